from gencap.errors import ConfigurationError, InfeasibleError, SolverError, UnboundedError
from gencap.model import ModelGenCap, load_parameters
from gencap.parameters import ParameterStore, ScenarioConfig, StorageBoundary
