from tblsummary.table.base import ColumnHeader, SummaryInputs, TableStructure, TblSummary, VariableMeta
from tblsummary.table.header import modify_footnote, modify_header, modify_spanning_header
from tblsummary.table.render import as_dataframe, as_markdown
from tblsummary.table.summary import tbl_summary
