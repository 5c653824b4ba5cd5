import pytest

from docx_factory import minimal_parts, write_package
from package_store import PartStore


@pytest.fixture
def parts():
    return minimal_parts()


@pytest.fixture
def docx_file(tmp_path, parts):
    return write_package(tmp_path / "report.docx", parts)


@pytest.fixture
def store(docx_file):
    """Open store on the test package; discarded (not saved) afterwards."""
    s = PartStore.open(docx_file)
    yield s
    s.close()
