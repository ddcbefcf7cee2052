from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from entity_importer.coercion import ValueCoercer
from entity_importer.config import ImporterConfig
from entity_importer.errors import CoercionFailure, DateFormatMismatch
from entity_importer.models import AttributeSpec, NativeType


@pytest.fixture()
def coercer():
    return ValueCoercer(ImporterConfig())


def attribute(native_type, **kwargs):
    return AttributeSpec(name="value", native_type=native_type, **kwargs)


@pytest.mark.parametrize(
    "native_type, raw, expected",
    [
        (NativeType.STRING, "text", "text"),
        (NativeType.STRING, 5, "5"),
        (NativeType.STRING, True, "true"),
        (NativeType.INTEGER, 42, 42),
        (NativeType.INTEGER, "42", 42),
        (NativeType.INTEGER, " 42.0 ", 42),
        (NativeType.INTEGER, 7.0, 7),
        (NativeType.DECIMAL, "12.50", Decimal("12.50")),
        (NativeType.DECIMAL, 3, Decimal("3")),
        (NativeType.FLOAT, "1.5", 1.5),
        (NativeType.FLOAT, 2, 2.0),
        (NativeType.BOOLEAN, "no", False),
        (NativeType.BOOLEAN, "TRUE", True),
        (NativeType.BOOLEAN, 1, True),
        (NativeType.BINARY, "aGVsbG8=", b"hello"),
        (NativeType.BINARY, b"\x00\x01", b"\x00\x01"),
    ],
)
def test_coerces_to_native_type(coercer, native_type, raw, expected):
    result = coercer.coerce(raw, attribute(native_type))

    assert result == expected
    assert type(result) is type(expected)


@pytest.mark.parametrize(
    "native_type, raw",
    [
        (NativeType.STRING, {"nested": True}),
        (NativeType.INTEGER, "4.5"),
        (NativeType.INTEGER, "many"),
        (NativeType.INTEGER, [1]),
        (NativeType.DECIMAL, "twelve"),
        (NativeType.FLOAT, "fast"),
        (NativeType.BOOLEAN, "maybe"),
        (NativeType.BINARY, "not base64!"),
        (NativeType.BINARY, 12),
        (NativeType.DATE, 1700000000),
        (NativeType.DECIMAL, True),
        (NativeType.INTEGER, False),
        (NativeType.FLOAT, True),
        (NativeType.FLOAT, 10**400),
        (NativeType.BOOLEAN, float("nan")),
        (NativeType.BOOLEAN, Decimal("Infinity")),
    ],
)
def test_unconvertible_values_raise(coercer, native_type, raw):
    with pytest.raises(CoercionFailure):
        coercer.coerce(raw, attribute(native_type))


def test_none_passes_through(coercer):
    assert coercer.coerce(None, attribute(NativeType.INTEGER)) is None


def test_native_values_are_untouched(coercer):
    value = datetime(2020, 5, 17, tzinfo=timezone.utc)

    assert coercer.coerce(value, attribute(NativeType.DATE)) is value


def test_date_uses_attribute_format(coercer):
    spec = attribute(NativeType.DATE, date_format="dd.MM.yyyy")

    assert coercer.coerce("24.12.2023", spec) == datetime(2023, 12, 24, tzinfo=timezone.utc)


def test_date_falls_back_to_configured_default():
    coercer = ValueCoercer(ImporterConfig(default_date_format="yyyy/MM/dd"))

    assert coercer.coerce("2023/12/24", attribute(NativeType.DATE)) == datetime(
        2023, 12, 24, tzinfo=timezone.utc
    )


def test_date_mismatch_reports_pattern(coercer):
    spec = attribute(NativeType.DATE, date_format="dd.MM.yyyy")

    with pytest.raises(DateFormatMismatch) as excinfo:
        coercer.coerce("2023-12-24", spec)

    assert excinfo.value.pattern == "dd.MM.yyyy"
    assert isinstance(excinfo.value, CoercionFailure)
