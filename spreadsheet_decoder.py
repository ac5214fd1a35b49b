import io
import logging
import math
import time
from datetime import date, datetime, time as dt_time, timedelta
from typing import Any, Optional

import numpy as np
import pandas as pd

from config import XLS_MIME_TYPE, XLSX_MIME_TYPE
from sheet_projector import Cell, Sheet
from utils.result import Result

logger = logging.getLogger(__name__)

# pandas reader engine per declared format
ENGINES = {
    XLSX_MIME_TYPE: "openpyxl",
    XLS_MIME_TYPE: "xlrd",
}


def to_cell(value: Any) -> Cell:
    """
    Convert a value produced by the Excel readers into a JSON-native cell.

    Missing values become ``None``, numpy scalars become Python scalars,
    whole floats become ints and dates/times become ISO 8601 strings.
    """
    if value is None:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, (int, str)):
        return value
    if value is pd.NaT:
        return None
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    return str(value)


def trim_to_used_range(df: pd.DataFrame) -> pd.DataFrame:
    """
    Drop blank rows above and blank columns left of the first used cell.

    Readers anchor the grid at A1; the returned frame starts at the
    first row and first column that hold any value.
    """
    used = df.notna()
    if not used.to_numpy().any():
        return df.iloc[0:0, 0:0]
    first_row = used.any(axis=1).to_numpy().argmax()
    first_col = used.any(axis=0).to_numpy().argmax()
    return df.iloc[first_row:, first_col:]


class SpreadsheetDecoder:
    """
    Decodes the first sheet of an XLSX or XLS workbook into a dense grid.

    The container formats are parsed by pandas (openpyxl for XLSX, xlrd for
    XLS). Failures from the readers are returned as a 500 Result carrying the
    underlying cause, never raised.
    """

    @staticmethod
    def engine_for(content_type: str) -> Optional[str]:
        # None lets pandas sniff the container
        return ENGINES.get(content_type)

    def decode(self, content: bytes, content_type: str) -> Result[Sheet]:
        """
        Decode raw workbook bytes.

        Args:
            content: Raw bytes of the workbook
            content_type: Declared MIME type, used to choose the reader

        Returns:
            Result[Sheet]: Rows of cells from the first sheet, ``[]`` when it is empty
        """
        engine = self.engine_for(content_type)
        log_context = {"content_type": content_type, "engine": engine, "size": len(content)}

        try:
            start_time = time.time()
            df = pd.read_excel(
                io.BytesIO(content),
                sheet_name=0,
                header=None,
                dtype=object,
                engine=engine,
                keep_default_na=False,
                na_values=[""],
            )
            read_time = time.time() - start_time
            df = trim_to_used_range(df)
        except Exception as e:
            logger.error(
                "Failed to read Excel file",
                extra={**log_context, "error": str(e), "error_type": type(e).__name__}
            )
            return Result.server_error(f"Failed to read Excel file: {type(e).__name__}: {e}")

        sheet = [[to_cell(value) for value in row] for row in df.itertuples(index=False, name=None)]
        logger.info(
            "Successfully read Excel file",
            extra={
                **log_context,
                "row_count": len(sheet),
                "column_count": len(df.columns),
                "read_time_seconds": f"{read_time:.2f}"
            }
        )
        return Result.ok(sheet)
