"""
familyplan — Family financial projection engine

Projects a family's assets, incomes, child expenses and goals month by
month, and evaluates whether each goal is reachable.

Modules
-------
- assets        : Per-asset monthly growth (deposits, fees, returns)
- inflation     : Cumulative inflation factors, nominal/real conversion
- income        : Effective income from dated income histories
- family        : Family member snapshots
- children      : Child-expense templates and dated milestones
- flows         : Extra deposits, withdrawals, yearly expenses, allocation
- simulation    : Timeline engine, results and summary
- goals         : Goal achievability and required contributions
- scenario      : run_simulation entry point
- cache         : Input-hash memoization of results
- config        : Pydantic scenario models and application settings
- serialization : Scenario/result JSON files
- cli           : `familyplan` command line

"""

__version__ = "0.1.0"

from .assets import AssetState, MonthFlows, advance_month
from .children import ChildExpenseItem, ChildExpenseProjector, ChildExpenseTemplate, standard_template
from .family import FamilyMember
from .flows import ExtraDeposit, WithdrawalEvent, YearlyExpense
from .goals import FinancialGoal, GoalAnalysis, GoalAnalyzer
from .income import IncomeRecord, IncomeResolver
from .inflation import InflationTracker
from .scenario import ScenarioInputs, run_simulation
from .simulation import SimulationParams, SimulationResults, TimelineEngine, TimelinePoint
from . import utils
