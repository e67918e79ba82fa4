"""
JSON Schema контракт install referrer записи

Raw запись от платформенного клиента проверяется по referrer_details.json
(Draft 2020-12) до построения ReferrerDetails модели.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


class SchemaLoader:
    """Загрузчик схем из schema/ рядом с модулем (или из schema_dir)."""

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Raises:
            FileNotFoundError: нет файла схемы
            ValueError: файл не является валидной JSON Schema
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


class ReferrerDetailsValidator:
    """Валидатор referrer_details контракта."""

    SCHEMA_NAME = "referrer_details"

    def __init__(self, loader: SchemaLoader | None = None):
        self.schema = (loader or SchemaLoader()).load_schema(self.SCHEMA_NAME)
        self._validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        self._validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self._validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[ValidationError]:
        return self._validator.iter_errors(data)


_REFERRER_DETAILS_VALIDATOR = ReferrerDetailsValidator()


def validate_referrer_details(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: запись не соответствует referrer_details.json
    """
    _REFERRER_DETAILS_VALIDATOR.validate(data)
