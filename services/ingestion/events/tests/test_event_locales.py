"""Locale normalization tests."""

from __future__ import annotations

import pytest

from services.ingestion.events.locales import format_locale


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("en", "en"),
        ("en_US", "en-US"),
        ("EN-us", "en-US"),
        ("pt_BR.UTF-8", "pt-BR"),
        ("de_DE@euro", "de-DE"),
        ("zh-hant-tw", "zh-Hant-TW"),
        ("es-419", "es-419"),
    ],
)
def test_locales_are_normalized(raw: str, expected: str) -> None:
    result = format_locale(raw)

    assert result.value == expected
    assert result.warning is None


def test_empty_locale_is_blank_without_warning() -> None:
    result = format_locale("")

    assert result.value == ""
    assert result.warning is None


def test_unparseable_locale_is_dropped_with_warning() -> None:
    result = format_locale("english please")

    assert result.value == ""
    assert result.warning == "invalid locale 'english please'"
