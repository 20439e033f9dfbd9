import pytest

from agentsysmetrics.numcpu import get_cpu, num_cpu, parse_cpu_list, parse_cpu_range


@pytest.mark.parametrize(
    "raw, platform, expected",
    [
        ("0-23", "basic X86", 24),
        ("0-1", "ARMv7", 2),
        ("0-63", "POWER7", 64),
        ("0", "QEMU", 1),
        ("0-1,3", "Kernel docs example 1", 3),
        ("2,4-31,32-63", "Kernel docs example 2", 61),
    ],
)
def test_cpu_parse(raw, platform, expected):
    assert parse_cpu_list(raw) == expected, platform


def test_cpu_parse_with_trailing_newline():
    assert parse_cpu_list("0-7\n") == 8


def test_parse_cpu_range():
    assert parse_cpu_range("4-31") == 28


def test_parse_cpu_range_invalid():
    with pytest.raises(ValueError):
        parse_cpu_range("a-b")


def test_parse_cpu_list_invalid_range():
    with pytest.raises(ValueError):
        parse_cpu_list("0,x-3")


def test_get_cpu():
    count = get_cpu()
    assert count is None or count > 0


def test_num_cpu():
    count = num_cpu()
    assert count != -1
    assert count >= 1