import pytest

from pandock.version import extract_version_from_output, is_update_available, normalize_version

TYPST_NAMES = ("typst.exe", "typst")


@pytest.mark.parametrize("text", ["pandoc.exe 3.7.0.2", "pandoc 3.7.0.2", "v3.7.0.2", "3.7.0.2", "  3.7.0.2\n"])
def test_normalize_version(text: str) -> None:
    assert normalize_version(text) == "3.7.0.2"


def test_normalize_version_stops_at_first_non_version_char() -> None:
    assert normalize_version("3.1.11-nightly") == "3.1.11"


def test_normalize_version_without_digits_keeps_text() -> None:
    assert normalize_version("Unknown") == "Unknown"


def test_normalize_version_fallback_strips_program_names() -> None:
    assert normalize_version("pandoc.exe dev") == "dev"


def test_normalize_version_of_program_name_only_returns_input() -> None:
    assert normalize_version("pandoc") == "pandoc"


def test_normalize_version_with_custom_program_names() -> None:
    assert normalize_version("typst 0.13.1 (8ace67d9)", TYPST_NAMES) == "0.13.1"


def test_extract_version_uses_first_line() -> None:
    output = "pandoc 3.7.0.2\nFeatures: +server +lua\nScripting engine: Lua 5.4\n"
    assert extract_version_from_output(output) == "3.7.0.2"


def test_extract_version_from_empty_output() -> None:
    assert extract_version_from_output("") == "Unknown"
    assert extract_version_from_output("  \n ") == "Unknown"


@pytest.mark.parametrize(
    ("current", "latest", "expected"),
    [
        ("3.6", "3.7.0.2", True),
        ("pandoc 3.7.0.2", "3.7.0.2", False),
        ("3.7.0.2", "v3.7.0.2", False),
        (None, "3.7.0.2", True),
        ("none", "3.7.0.2", True),
        # Plain string comparison, not semantic ordering.
        ("3.6", "3.6.0", True),
    ],
)
def test_is_update_available(current: str | None, latest: str, expected: bool) -> None:
    assert is_update_available(current, latest) is expected
