import pytest

from file_size import format_file_size


@pytest.mark.parametrize(
    "size, expected",
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (int(1.5 * 1024**3), "1.5 GB"),
        (1024**4, "1 TB"),
        (1024**5, "1 PB"),
        (1024**6, "1024 PB"),
    ],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected
