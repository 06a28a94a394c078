import pytest

from datafitter_pkg.utils.data_loading import Dataset


@pytest.fixture
def linear_dataset():
    """Samples of y = 2x."""
    return Dataset.from_pairs([(0, 0), (1, 2), (2, 4), (3, 6)])


@pytest.fixture
def linear_data_file(tmp_path):
    path = tmp_path / "linear.dat"
    path.write_text("# y = 2x + 1\n0 1\n1 3\n\n2 5\n3 7\n", encoding="utf-8")
    return str(path)
