from typing import Any, Dict, List, Sequence, Union

from config import ProjectionMode

# A decoded cell: string, number, boolean or empty
Cell = Union[str, int, float, bool, None]
Row = List[Cell]
Sheet = List[Row]
ProjectedResult = Union[Sheet, Dict[str, Any]]


def header_text(value: Cell) -> str:
    """
    String form of a header cell, trimmed.

    Empty header cells become ``""`` and booleans are spelled the way JSON
    spells them.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


class SheetProjector:
    """
    Turns a decoded sheet into the JSON-shaped payload.

    Pure and deterministic: projecting the same sheet twice gives equal
    output. Ragged rows, duplicate headers and empty sheets never raise.
    """

    def __init__(self, mode: ProjectionMode = ProjectionMode.ROWS_AS_ARRAYS):
        self.mode = ProjectionMode(mode)

    def project(self, sheet: Sequence[Sequence[Cell]]) -> ProjectedResult:
        if self.mode is ProjectionMode.ROWS_AS_OBJECTS:
            return self.rows_as_objects(sheet)
        return self.rows_as_arrays(sheet)

    @staticmethod
    def rows_as_arrays(sheet: Sequence[Sequence[Cell]]) -> Sheet:
        return [list(row) for row in sheet]

    @staticmethod
    def rows_as_objects(sheet: Sequence[Sequence[Cell]]) -> Dict[str, Any]:
        """
        Key every data row by the header row.

        Row 0 supplies the headers. Each following row becomes an object with
        one key per header column: cells missing at the end of a short row
        are ``None``, cells beyond the header width are dropped. When two
        headers trim to the same text the later column wins.

        Returns:
            dict: ``{}`` for an empty sheet, otherwise
            ``{"data": [...], "totalRows": n, "totalColumns": m}``
        """
        if not sheet:
            return {}

        headers = [header_text(cell) for cell in sheet[0]]
        data = []
        for row in sheet[1:]:
            record: Dict[str, Cell] = {}
            for col, header in enumerate(headers):
                record[header] = row[col] if col < len(row) else None
            data.append(record)

        return {
            "data": data,
            "totalRows": len(sheet) - 1,
            "totalColumns": len(headers),
        }
