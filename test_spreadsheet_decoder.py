from datetime import date, datetime
from http import HTTPStatus
from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

import spreadsheet_decoder
from config import XLS_MIME_TYPE, XLSX_MIME_TYPE
from spreadsheet_decoder import SpreadsheetDecoder, to_cell, trim_to_used_range


@pytest.fixture
def decoder():
    return SpreadsheetDecoder()


class TestDecodeXlsx:
    """
    Tests for decoding Office Open XML workbooks.
    """

    def test_values_keep_their_types(self, decoder, make_xlsx, people_rows):
        result = decoder.decode(make_xlsx(people_rows), XLSX_MIME_TYPE)

        assert result.is_success()
        assert result.data == people_rows
        assert isinstance(result.data[1][1], int)

    def test_floats_and_booleans(self, decoder, make_xlsx):
        rows = [["price", "in_stock"], [19.99, True], [5.0, False]]

        result = decoder.decode(make_xlsx(rows), XLSX_MIME_TYPE)

        assert result.data == [["price", "in_stock"], [19.99, True], [5, False]]
        assert result.data[1][1] is True

    def test_empty_cells_become_none_and_grid_is_dense(self, decoder, make_xlsx):
        rows = [["a", "b", "c"], ["x"], [None, None, "z"]]

        result = decoder.decode(make_xlsx(rows), XLSX_MIME_TYPE)

        assert result.data == [["a", "b", "c"], ["x", None, None], [None, None, "z"]]

    def test_na_like_strings_are_kept_verbatim(self, decoder, make_xlsx):
        rows = [["status", "note"], ["NA", "null"], ["N/A", "nan"]]

        result = decoder.decode(make_xlsx(rows), XLSX_MIME_TYPE)

        assert result.data == rows

    def test_dates_are_rendered_as_iso_strings(self, decoder, make_xlsx):
        rows = [["when"], [datetime(2024, 1, 15, 9, 30)]]

        result = decoder.decode(make_xlsx(rows), XLSX_MIME_TYPE)

        assert result.data == [["when"], ["2024-01-15T09:30:00"]]

    def test_empty_sheet_decodes_to_empty_list(self, decoder, make_xlsx):
        result = decoder.decode(make_xlsx([]), XLSX_MIME_TYPE)

        assert result.is_success()
        assert result.data == []

    def test_table_not_starting_at_a1_is_anchored_at_first_used_cell(self, decoder):
        """
        Test that blank rows above and blank columns left of the data are dropped.

        Interior blank rows and columns stay in place.
        """
        import io
        from openpyxl import Workbook

        workbook = Workbook()
        worksheet = workbook.active
        worksheet["B2"] = "h1"
        worksheet["D2"] = "h2"
        worksheet["B3"] = 1
        worksheet["D3"] = 2
        worksheet["B5"] = 3
        buffer = io.BytesIO()
        workbook.save(buffer)

        result = decoder.decode(buffer.getvalue(), XLSX_MIME_TYPE)

        assert result.data == [
            ["h1", None, "h2"],
            [1, None, 2],
            [None, None, None],
            [3, None, None],
        ]

    def test_only_first_sheet_is_read(self, decoder):
        import io
        from openpyxl import Workbook

        workbook = Workbook()
        workbook.active.append(["first"])
        workbook.create_sheet("Other").append(["second"])
        buffer = io.BytesIO()
        workbook.save(buffer)

        result = decoder.decode(buffer.getvalue(), XLSX_MIME_TYPE)

        assert result.data == [["first"]]


class TestDecodeXls:
    """
    Tests for decoding legacy binary workbooks.
    """

    def test_values_match_xlsx_decoding(self, decoder, make_xls, product_rows):
        result = decoder.decode(make_xls(product_rows), XLS_MIME_TYPE)

        assert result.is_success()
        assert result.data == product_rows
        assert isinstance(result.data[1][2], int)


class TestDecodeFailures:

    def test_garbage_bytes_fail_with_server_error(self, decoder):
        result = decoder.decode(b"this is not a workbook", XLSX_MIME_TYPE)

        assert result.is_failure()
        assert result.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
        assert result.error.startswith("Failed to read Excel file")

    def test_reader_exception_is_captured_and_logged(self, decoder):
        with patch("pandas.read_excel", side_effect=ValueError("corrupt zip")), \
             patch.object(spreadsheet_decoder.logger, "error") as log_error:
            result = decoder.decode(b"...", XLS_MIME_TYPE)

        assert result.is_failure()
        assert "corrupt zip" in result.error
        log_error.assert_called_once()

    def test_engine_follows_declared_type(self, decoder):
        with patch("pandas.read_excel", return_value=pd.DataFrame()) as read_excel:
            decoder.decode(b"...", XLS_MIME_TYPE)
            decoder.decode(b"...", XLSX_MIME_TYPE)

        engines = [call.kwargs["engine"] for call in read_excel.call_args_list]
        assert engines == ["xlrd", "openpyxl"]

    def test_unknown_type_lets_pandas_detect_engine(self):
        assert SpreadsheetDecoder.engine_for("application/octet-stream") is None


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        (float("nan"), None),
        (pd.NaT, None),
        (np.int64(7), 7),
        (np.float64(2.5), 2.5),
        (np.bool_(True), True),
        (30.0, 30),
        ("text", "text"),
        (date(2024, 2, 29), "2024-02-29"),
        (pd.Timestamp("2024-03-01 12:00"), "2024-03-01T12:00:00"),
    ],
    ids=["none", "nan", "nat", "np-int", "np-float", "np-bool", "whole-float",
         "string", "date", "timestamp"]
)
def test_to_cell(value, expected):
    assert to_cell(value) == expected
    assert type(to_cell(value)) is type(expected)


class TestTrimToUsedRange:

    def test_leading_blank_rows_and_columns_are_dropped(self):
        df = pd.DataFrame([
            [np.nan, np.nan, np.nan],
            [np.nan, "h1", "h2"],
            [np.nan, 1, 2],
        ], dtype=object)

        trimmed = trim_to_used_range(df)

        assert trimmed.values.tolist() == [["h1", "h2"], [1, 2]]

    def test_frame_starting_at_a1_is_unchanged(self):
        df = pd.DataFrame([["a", "b"], [1, np.nan]], dtype=object)

        assert trim_to_used_range(df).shape == (2, 2)

    def test_all_blank_frame_becomes_empty(self):
        df = pd.DataFrame([[np.nan, np.nan]], dtype=object)

        assert trim_to_used_range(df).empty
