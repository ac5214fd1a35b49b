"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and it provides
in-memory workbooks shared by the test modules.
"""
import io
import os
import sys

import pytest

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))


def build_xlsx(rows):
    """Serialise rows into XLSX bytes with openpyxl."""
    from openpyxl import Workbook

    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Sheet1"
    for row in rows:
        worksheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def build_xls(rows):
    """Serialise rows into legacy XLS bytes with xlwt."""
    xlwt = pytest.importorskip("xlwt")

    workbook = xlwt.Workbook()
    worksheet = workbook.add_sheet("Sheet1")
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            if value is not None:
                worksheet.write(r, c, value)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def people_rows():
    """Header row plus two people, mixing strings and numbers."""
    return [
        ["Name", "Age", "City"],
        ["John Doe", 30, "New York"],
        ["Jane Smith", 25, "Los Angeles"],
    ]


@pytest.fixture
def product_rows():
    return [
        ["Product", "Price", "Quantity"],
        ["Widget A", 19.99, 100],
        ["Widget B", 29.99, 50],
    ]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_xlsx():
    return build_xlsx


@pytest.fixture
def make_xls():
    return build_xls
