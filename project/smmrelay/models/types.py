# smmrelay/models/types.py
# Типизированные значения, хранящиеся в БД как JSON-текст

import json
from typing import Iterator, Mapping

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator


class ServiceIdRules(Mapping):
    """
    Правила маршрутизации по ID услуги: serviceId (строка) → получатель
    (JID группы или номер телефона).
    """

    def __init__(self, rules: Mapping | None = None):
        self._rules = {}
        for service_id, destination in (rules or {}).items():
            if destination is None or str(destination).strip() == "":
                continue
            self._rules[str(service_id).strip()] = str(destination).strip()

    def destination_for(self, service_id) -> str | None:
        if service_id is None:
            return None
        return self._rules.get(str(service_id).strip())

    @classmethod
    def from_json(cls, raw: str | None) -> "ServiceIdRules | None":
        """Битый или не-объектный JSON читается как отсутствие правил."""
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(parsed, dict):
            return None
        return cls(parsed)

    def to_json(self) -> str:
        return json.dumps(self._rules, ensure_ascii=False, sort_keys=True)

    def to_dict(self) -> dict:
        return dict(self._rules)

    def __getitem__(self, key):
        return self._rules[str(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __eq__(self, other):
        if isinstance(other, Mapping):
            return dict(self._rules) == {str(k): v for k, v in other.items()}
        return NotImplemented

    def __repr__(self):
        return f"ServiceIdRules({self._rules!r})"


class ServiceIdRulesType(TypeDecorator):
    """Колонка TEXT ↔ ServiceIdRules. Пустые правила хранятся как NULL."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, ServiceIdRules):
            value = ServiceIdRules(value)
        if not value:
            return None
        return value.to_json()

    def process_result_value(self, value, dialect):
        return ServiceIdRules.from_json(value)


class JSONText(TypeDecorator):
    """Колонка TEXT ↔ dict; битый JSON читается как None."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value, dialect):
        if not value:
            return None
        try:
            parsed = json.loads(value)
        except (TypeError, ValueError):
            return None
        return parsed if isinstance(parsed, dict) else None
