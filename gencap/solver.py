"""
Solver backends.

Each backend takes a LinearProblem and returns a Solution (objective value, value of every variable and, when the
solver provides them, the duals of the constraints), or raises InfeasibleError, UnboundedError or SolverError.
"""

import logging
import math
import time
from dataclasses import dataclass, field

import numpy as np
from pyomo.common.errors import ApplicationError
from pyomo.environ import (
    ConcreteModel,
    Constraint,
    Objective,
    RangeSet,
    Reals,
    SolverFactory,
    SolverStatus,
    Suffix,
    TerminationCondition,
    Var,
    maximize,
    minimize,
    quicksum,
    value
)
from scipy import sparse
from scipy.optimize import linprog

from gencap.errors import InfeasibleError, SolverError, UnboundedError
from gencap.problem import EQ, GE, LE, MINIMIZE

logger = logging.getLogger(__name__)

# infeasibleOrUnbounded is reported as infeasible: with non-negative costs the objective is bounded below by zero
INFEASIBLE_CONDITIONS = (TerminationCondition.infeasible, TerminationCondition.infeasibleOrUnbounded)
LIMIT_CONDITIONS = (TerminationCondition.maxTimeLimit, TerminationCondition.maxIterations,
                    TerminationCondition.maxEvaluations)

LINPROG_STATUS = {
    0: "optimal",
    1: "maxTimeLimit",
    2: "infeasible",
    3: "unbounded",
    4: "error",
}


@dataclass(frozen=True)
class Solution:
    """Optimal solution returned by a backend.

    :param objective: float
    :param values: dict
        Value of every variable, keyed by VarKey
    :param duals: dict
        Dual value of constraints, keyed by (family, index). May be empty when the backend does not report duals.
    """
    objective: float
    values: dict
    duals: dict = field(default_factory=dict)
    termination_condition: str = "optimal"
    solver: str = ""
    solve_time: float = 0.0

    def __getitem__(self, key):
        return self.values[key]

    def dual(self, family, *index):
        return self.duals.get((family, tuple(index)))


class PyomoSolver:
    """Solves the problem with any solver Pyomo's SolverFactory knows, HiGHS by default.

    :param solver_name: str
    :param timeout: float
        Time limit in seconds passed to the solver, None for no limit
    :param options: dict
        Solver specific options
    """

    def __init__(self, solver_name="appsi_highs", timeout=None, options=None):
        self.solver_name = solver_name
        self.timeout = timeout
        self.options = dict(options) if options is not None else {}

    @property
    def name(self):
        return self.solver_name

    def to_pyomo(self, problem):
        """Translates the problem into a Pyomo ConcreteModel. Variables are indexed by their position in
        problem.variables and constraints by their position in problem.constraints."""
        keys = list(problem.variables)
        position = {key: i for i, key in enumerate(keys)}

        model = ConcreteModel(name=problem.name)
        # Dual Variable, used to get the marginal value of an equation.
        model.dual = Suffix(direction=Suffix.IMPORT)
        model.variable_index = RangeSet(0, len(keys) - 1)
        model.constraint_index = RangeSet(0, len(problem.constraints) - 1)

        def bounds_rule(model, i):
            return problem.variables[keys[i]].bounds()

        def linear_rule(expression):
            return quicksum(coef * model.x[position[key]] for key, coef in expression.terms.items())

        def constraint_rule(model, j):
            constraint = problem.constraints[j]
            if not constraint.body.terms:
                if constraint.is_satisfied({}):
                    return Constraint.Skip
                raise InfeasibleError(f"Constraint {constraint.name} has no variable and cannot be satisfied")
            body = linear_rule(constraint.body)
            if constraint.sense == EQ:
                return body == constraint.rhs
            elif constraint.sense == LE:
                return body <= constraint.rhs
            return body >= constraint.rhs

        model.x = Var(model.variable_index, within=Reals, bounds=bounds_rule, initialize=0)
        model.constraints = Constraint(model.constraint_index, rule=constraint_rule)
        model.objective = Objective(expr=linear_rule(problem.objective) + problem.objective.constant,
                                    sense=minimize if problem.sense == MINIMIZE else maximize)
        return model, keys

    def solve(self, problem):
        model, keys = self.to_pyomo(problem)
        opt = SolverFactory(self.solver_name)
        if not opt.available(exception_flag=False):
            raise SolverError(f"Solver {self.solver_name} is not available")
        logger.info("Solving %s using %s", problem.name, self.solver_name)

        t1 = time.time()
        try:
            solver_results = opt.solve(model, load_solutions=False, timelimit=self.timeout, options=self.options)
        except (ApplicationError, RuntimeError, ValueError) as e:
            raise SolverError(f"Solver {self.solver_name} failed: {e}") from e
        solve_time = time.time() - t1

        status = solver_results.solver.status
        termination_condition = solver_results.solver.termination_condition
        if status in (SolverStatus.ok, SolverStatus.warning) and \
                termination_condition == TerminationCondition.optimal:
            model.solutions.load_from(solver_results)
        elif termination_condition in INFEASIBLE_CONDITIONS:
            raise InfeasibleError(f"Problem {problem.name} is infeasible", str(termination_condition))
        elif termination_condition == TerminationCondition.unbounded:
            raise UnboundedError(f"Problem {problem.name} is unbounded", str(termination_condition))
        elif termination_condition in LIMIT_CONDITIONS:
            raise SolverError(f"Solver {self.solver_name} stopped on {termination_condition} after "
                              f"{solve_time:.1f}s", str(termination_condition))
        else:
            raise SolverError(f"Solver {self.solver_name} returned status {status} and termination condition "
                              f"{termination_condition}", str(termination_condition))

        values = {}
        for i, key in enumerate(keys):
            val = model.x[i].value
            values[key] = 0.0 if val is None else float(val)
        duals = {}
        for j, constraint in enumerate(problem.constraints):
            if j in model.constraints and model.constraints[j] in model.dual:
                duals[(constraint.family, constraint.index)] = float(model.dual[model.constraints[j]])
        return Solution(objective=float(value(model.objective)), values=values, duals=duals,
                        termination_condition=str(termination_condition), solver=self.solver_name,
                        solve_time=solve_time)


class ScipySolver:
    """Solves the problem with scipy.optimize.linprog and the HiGHS method, using sparse constraint matrices.

    :param timeout: float
        Time limit in seconds, None for no limit
    :param options: dict
        Additional linprog options
    """

    def __init__(self, timeout=None, options=None):
        self.timeout = timeout
        self.options = dict(options) if options is not None else {}

    @property
    def name(self):
        return "scipy"

    def to_matrices(self, problem):
        """Returns the linprog arguments (c, A_ub, b_ub, A_eq, b_eq, bounds) and the row of every constraint, as
        ("eq" or "ub", row, sign)."""
        keys = list(problem.variables)
        position = {key: i for i, key in enumerate(keys)}
        n = len(keys)

        sign = 1 if problem.sense == MINIMIZE else -1
        c = np.zeros(n)
        for key, coef in problem.objective.terms.items():
            c[position[key]] += sign * coef

        rows = {"eq": ([], [], [], []), "ub": ([], [], [], [])}  # data, row, col, rhs
        mapping = []
        for constraint in problem.constraints:
            block = "eq" if constraint.sense == EQ else "ub"
            factor = -1.0 if constraint.sense == GE else 1.0
            data, row_index, col_index, rhs = rows[block]
            row = len(rhs)
            for key, coef in constraint.body.terms.items():
                data.append(factor * coef)
                row_index.append(row)
                col_index.append(position[key])
            rhs.append(factor * constraint.rhs)
            mapping.append((block, row, factor))

        def to_sparse(block):
            data, row_index, col_index, rhs = rows[block]
            if not rhs:
                return None, None
            return sparse.csr_matrix((data, (row_index, col_index)), shape=(len(rhs), n)), np.array(rhs)

        A_ub, b_ub = to_sparse("ub")
        A_eq, b_eq = to_sparse("eq")
        bounds = [problem.variables[key].bounds() for key in keys]
        return keys, (c, A_ub, b_ub, A_eq, b_eq, bounds), mapping

    def solve(self, problem):
        keys, (c, A_ub, b_ub, A_eq, b_eq, bounds), mapping = self.to_matrices(problem)
        options = dict(self.options)
        if self.timeout is not None:
            options["time_limit"] = float(self.timeout)
        logger.info("Solving %s using scipy linprog (HiGHS)", problem.name)

        t1 = time.time()
        try:
            result = linprog(c, A_ub=A_ub, b_ub=b_ub, A_eq=A_eq, b_eq=b_eq, bounds=bounds, method="highs",
                             options=options)
        except ValueError as e:
            raise SolverError(f"linprog failed: {e}") from e
        solve_time = time.time() - t1

        termination_condition = LINPROG_STATUS.get(result.status, "error")
        if result.status == 2 or (result.status == 4 and "infeasible" in str(result.message).lower()):
            raise InfeasibleError(f"Problem {problem.name} is infeasible: {result.message}", termination_condition)
        elif result.status == 3:
            raise UnboundedError(f"Problem {problem.name} is unbounded: {result.message}", termination_condition)
        elif result.status != 0 or result.x is None:
            raise SolverError(f"linprog stopped with status {result.status}: {result.message}",
                              termination_condition)

        values = {key: float(result.x[i]) for i, key in enumerate(keys)}
        sign = 1 if problem.sense == MINIMIZE else -1
        objective = sign * float(result.fun) + problem.objective.constant

        duals = {}
        marginals = {
            "eq": getattr(getattr(result, "eqlin", None), "marginals", None),
            "ub": getattr(getattr(result, "ineqlin", None), "marginals", None),
        }
        for constraint, (block, row, factor) in zip(problem.constraints, mapping):
            block_marginals = marginals[block]
            if block_marginals is not None and not math.isnan(block_marginals[row]):
                duals[(constraint.family, constraint.index)] = sign * factor * float(block_marginals[row])
        return Solution(objective=objective, values=values, duals=duals, termination_condition=termination_condition,
                        solver="scipy", solve_time=solve_time)


def get_solver(solver_name="appsi_highs", timeout=None, options=None):
    """Returns the backend for `solver_name`: "scipy" for linprog, any other name is handed to Pyomo."""
    if solver_name.strip().lower() == "scipy":
        return ScipySolver(timeout=timeout, options=options)
    return PyomoSolver(solver_name, timeout=timeout, options=options)
