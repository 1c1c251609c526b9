"""
Exceptions and warnings raised while analysing rustasim logs
"""


class LogAnalysisError(Exception):
    """Base class for every error raised by the analysis pipeline"""


class SchemaMismatchError(LogAnalysisError):
    """Input file does not match the expected column schema"""

    def __init__(self, path, detail: str):
        self.path = str(path)
        self.detail = detail
        super().__init__(f"{self.path}: {detail}")


class SentinelFilterExhaustionError(LogAnalysisError):
    """Sentinel filtering removed every row of a table"""

    def __init__(self, column: str, dropped: int):
        self.column = column
        self.dropped = dropped
        super().__init__(f"all {dropped} rows dropped by the '{column}' sentinel filter")


class EmptyGroupError(LogAnalysisError):
    """Aggregation requested on a table with no rows"""


class JoinMismatchWarning(UserWarning):
    """Rows were dropped because they had no partner on the other side of a join"""
