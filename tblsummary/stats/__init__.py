from tblsummary.stats.result import ProcedureResult
from tblsummary.stats.registry import ProcedureRegistry, get_default_registry
from tblsummary.stats.selection import default_test, parse_test_spec, select_tests
from tblsummary.stats.executor import run_test
