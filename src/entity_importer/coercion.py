from __future__ import annotations

import base64
import binascii
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .config import ImporterConfig
from .date_format import compile_pattern
from .errors import CoercionFailure, DateFormatMismatch
from .models import AttributeSpec, NativeType

TRUE_STRINGS = {"true", "1", "yes", "y", "on"}
FALSE_STRINGS = {"false", "0", "no", "n", "off"}


class ValueCoercer:
    """Convert raw record values into the native type of an attribute."""

    def __init__(self, config: Optional[ImporterConfig] = None) -> None:
        self._config = config or ImporterConfig.from_defaults()

    @property
    def default_date_format(self) -> str:
        return self._config.default_date_format

    def coerce(self, value: Any, attribute: AttributeSpec) -> Any:
        """Return ``value`` converted for ``attribute``.

        ``None`` is returned unchanged; the importer treats it as "leave the
        attribute alone". Raises :class:`CoercionFailure` (or its subclass
        :class:`DateFormatMismatch`) when the value cannot be converted.
        """
        if value is None:
            return None

        native_type = attribute.native_type
        if native_type is NativeType.STRING:
            return self._to_string(value, attribute)
        if native_type is NativeType.INTEGER:
            return self._to_integer(value, attribute)
        if native_type is NativeType.DECIMAL:
            return self._to_decimal(value, attribute)
        if native_type is NativeType.FLOAT:
            return self._to_float(value, attribute)
        if native_type is NativeType.BOOLEAN:
            return self._to_boolean(value, attribute)
        if native_type is NativeType.DATE:
            return self._to_date(value, attribute)
        if native_type is NativeType.BINARY:
            return self._to_binary(value, attribute)
        raise CoercionFailure(attribute.name, value, f"unsupported type {native_type}")

    @staticmethod
    def _to_string(value: Any, attribute: AttributeSpec) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        raise CoercionFailure(attribute.name, value, "expected a string")

    @staticmethod
    def _to_integer(value: Any, attribute: AttributeSpec) -> int:
        if isinstance(value, bool):
            raise CoercionFailure(attribute.name, value, "expected a number")
        if isinstance(value, int):
            return int(value)
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text)
            except ValueError:
                pass
            try:
                value = Decimal(text)
            except InvalidOperation:
                raise CoercionFailure(attribute.name, text, "not a number") from None
        if isinstance(value, (float, Decimal)):
            number = Decimal(str(value)) if isinstance(value, float) else value
            if number.is_finite() and number == number.to_integral_value():
                return int(number)
            raise CoercionFailure(attribute.name, value, "not an integral number")
        raise CoercionFailure(attribute.name, value, "expected a number")

    @staticmethod
    def _to_decimal(value: Any, attribute: AttributeSpec) -> Decimal:
        if isinstance(value, bool):
            raise CoercionFailure(attribute.name, value, "expected a number")
        if isinstance(value, Decimal):
            return value
        if isinstance(value, (int, float, str)):
            text = value.strip() if isinstance(value, str) else str(value)
            try:
                return Decimal(text)
            except InvalidOperation:
                raise CoercionFailure(attribute.name, value, "not a number") from None
        raise CoercionFailure(attribute.name, value, "expected a number")

    @staticmethod
    def _to_float(value: Any, attribute: AttributeSpec) -> float:
        if isinstance(value, bool):
            raise CoercionFailure(attribute.name, value, "expected a number")
        if isinstance(value, float):
            return value
        if isinstance(value, (int, Decimal, str)):
            try:
                return float(value.strip() if isinstance(value, str) else value)
            except (OverflowError, ValueError):
                raise CoercionFailure(attribute.name, value, "not a number") from None
        raise CoercionFailure(attribute.name, value, "expected a number")

    @staticmethod
    def _to_boolean(value: Any, attribute: AttributeSpec) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float, Decimal)):
            if isinstance(value, Decimal) and not value.is_finite():
                raise CoercionFailure(attribute.name, value, "not a finite number")
            if isinstance(value, float) and not math.isfinite(value):
                raise CoercionFailure(attribute.name, value, "not a finite number")
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in TRUE_STRINGS:
                return True
            if lowered in FALSE_STRINGS:
                return False
        raise CoercionFailure(attribute.name, value, "expected a boolean")

    def _to_date(self, value: Any, attribute: AttributeSpec) -> date:
        if isinstance(value, (datetime, date)):
            return value
        if not isinstance(value, str):
            raise CoercionFailure(attribute.name, value, "expected a date string")

        pattern = attribute.date_format or self._config.default_date_format
        try:
            return compile_pattern(pattern).parse(value)
        except ValueError:
            raise DateFormatMismatch(attribute.name, value, pattern) from None

    @staticmethod
    def _to_binary(value: Any, attribute: AttributeSpec) -> bytes:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError):
                raise CoercionFailure(attribute.name, value, "invalid base64") from None
        raise CoercionFailure(attribute.name, value, "expected base64 or bytes")
