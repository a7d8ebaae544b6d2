"""
Solver-agnostic description of a linear program.

A LinearProblem is a list of named variables, a linear objective and a list of linear constraints. Each constraint
belongs to a family (e.g. "electricity_adequacy_constraint") and is identified inside the family by an index tuple
(e.g. the hour), so that solver backends and result readers can address them without knowing how they were built.
"""

from dataclasses import dataclass
from typing import NamedTuple

EQ = "=="
LE = "<="
GE = ">="
SENSES = (EQ, LE, GE)

MINIMIZE = "minimize"


class VarKey(NamedTuple):
    """Identifier of a decision variable: its family name and its index inside the family."""
    family: str
    index: tuple = ()

    def __str__(self):
        if not self.index:
            return self.family
        return f"{self.family}[{','.join(str(i) for i in self.index)}]"


@dataclass(frozen=True)
class Variable:
    """Continuous decision variable. A bound set to None means the variable is unbounded on that side."""
    key: VarKey
    lower: float = 0.0
    upper: float = None

    def bounds(self):
        return self.lower, self.upper


class LinearExpression:
    """Mapping from variable to coefficient, plus a constant term."""

    __slots__ = ("terms", "constant")

    def __init__(self, terms=None, constant=0.0):
        self.terms = {}
        self.constant = float(constant)
        if terms is not None:
            for key, coef in dict(terms).items():
                self.add_term(key, coef)

    @classmethod
    def of(cls, key, coef=1.0):
        return cls({key: coef})

    def add_term(self, key, coef):
        coef = float(coef)
        if coef == 0:
            return self
        total = self.terms.get(key, 0.0) + coef
        if total == 0:
            self.terms.pop(key, None)
        else:
            self.terms[key] = total
        return self

    def copy(self):
        expression = LinearExpression(constant=self.constant)
        expression.terms = dict(self.terms)
        return expression

    def __add__(self, other):
        result = self.copy()
        if isinstance(other, LinearExpression):
            for key, coef in other.terms.items():
                result.add_term(key, coef)
            result.constant += other.constant
        else:
            result.constant += float(other)
        return result

    __radd__ = __add__

    def __neg__(self):
        return self * -1

    def __sub__(self, other):
        return self + (-other)

    def __rsub__(self, other):
        return (-self) + other

    def __mul__(self, scalar):
        if isinstance(scalar, LinearExpression):
            raise TypeError("The product of two linear expressions is not linear")
        scalar = float(scalar)
        result = LinearExpression(constant=self.constant * scalar)
        if scalar != 0:
            result.terms = {key: coef * scalar for key, coef in self.terms.items()}
        return result

    __rmul__ = __mul__

    def evaluate(self, values):
        """Value of the expression for the variable values given as a mapping VarKey -> float."""
        return self.constant + sum(coef * values[key] for key, coef in self.terms.items())

    def variables(self):
        return list(self.terms)

    def __repr__(self):
        terms = " + ".join(f"{coef:g}*{key}" for key, coef in self.terms.items())
        return f"LinearExpression({terms or '0'} + {self.constant:g})"


@dataclass(frozen=True)
class LinearConstraint:
    """Constraint `body sense rhs`, where body only holds variable terms."""
    family: str
    index: tuple
    body: LinearExpression
    sense: str
    rhs: float = 0.0

    def residual(self, values):
        """Difference between body and right-hand side for the given values."""
        return self.body.evaluate(values) - self.rhs

    def is_satisfied(self, values, tol=1e-6):
        """Checks the constraint up to `tol`, taken relative to the largest term when it exceeds 1."""
        residual = self.residual(values)
        scale = max([1.0, abs(self.rhs)] + [abs(coef * values[key]) for key, coef in self.body.terms.items()])
        tol = tol * scale
        if self.sense == EQ:
            return abs(residual) <= tol
        if self.sense == LE:
            return residual <= tol
        return residual >= -tol

    @property
    def name(self):
        return str(VarKey(self.family, self.index))


class LinearProblem:
    """Variables, constraints and objective of a linear program."""

    def __init__(self, name, sense=MINIMIZE):
        self.name = name
        self.sense = sense
        self.variables = {}
        self.constraints = []
        self.objective = LinearExpression()
        self._families = {}
        self._by_name = {}
        self._sealed = False

    def _check_open(self):
        if self._sealed:
            raise RuntimeError(f"Problem {self.name} is sealed and can no longer be modified")

    def add_variable(self, family, index=(), lower=0.0, upper=None):
        self._check_open()
        key = VarKey(family, tuple(index))
        if key in self.variables:
            raise ValueError(f"Variable {key} is already defined")
        self.variables[key] = Variable(key, lower, upper)
        return key

    def var(self, family, *index):
        """Returns the key of an existing variable."""
        key = VarKey(family, tuple(index))
        if key not in self.variables:
            raise KeyError(f"Variable {key} is not defined in problem {self.name}")
        return key

    def add_constraint(self, family, index, lhs, sense, rhs=0.0):
        """Adds the constraint `lhs sense rhs`. Both sides may be expressions or numbers; constants are moved to
        the right-hand side."""
        self._check_open()
        if sense not in SENSES:
            raise ValueError(f"Unknown constraint sense {sense!r}")
        expression = LinearExpression() + lhs - rhs
        unknown = [key for key in expression.terms if key not in self.variables]
        if unknown:
            raise KeyError(f"Constraint {family}{tuple(index)} uses undefined variables {unknown[:5]}")
        body = expression.copy()
        body.constant = 0.0
        constraint = LinearConstraint(family, tuple(index), body, sense, -expression.constant)
        self.constraints.append(constraint)
        self._families.setdefault(family, []).append(constraint)
        self._by_name[(family, constraint.index)] = constraint
        return constraint

    def set_objective(self, expression, sense=MINIMIZE):
        self._check_open()
        self.objective = LinearExpression() + expression
        self.sense = sense

    def seal(self):
        self._sealed = True
        return self

    @property
    def sealed(self):
        return self._sealed

    @property
    def families(self):
        return list(self._families)

    def constraints_of(self, family):
        return list(self._families.get(family, []))

    def constraint(self, family, *index):
        try:
            return self._by_name[(family, tuple(index))]
        except KeyError:
            raise KeyError(f"Constraint {family}{tuple(index)} is not defined in problem {self.name}") from None

    def violations(self, values, tol=1e-6):
        """Lists the variable bounds and constraints that the given values do not satisfy.

        :param values: dict
            Value of every variable, keyed by VarKey
        :param tol: float
        :return: list of (name, residual)
        """
        violated = []
        for key, variable in self.variables.items():
            value = values[key]
            if variable.lower is not None and value < variable.lower - tol:
                violated.append((f"lower bound of {key}", value - variable.lower))
            if variable.upper is not None and value > variable.upper + tol:
                violated.append((f"upper bound of {key}", value - variable.upper))
        for constraint in self.constraints:
            if not constraint.is_satisfied(values, tol=tol):
                violated.append((constraint.name, constraint.residual(values)))
        return violated

    def __repr__(self):
        return f"LinearProblem({self.name!r}, {len(self.variables)} variables, {len(self.constraints)} constraints)"
