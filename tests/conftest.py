import pytest

from models import ResultSet
from sample_schemas import EMPLOYEES, SHOP


@pytest.fixture
def employees():
    return EMPLOYEES


@pytest.fixture
def shop():
    return SHOP


@pytest.fixture
def names_result():
    return ResultSet(columns=("name",), rows=(("Alice",), ("Carol",)))
