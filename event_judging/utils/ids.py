# utils/ids.py
from typing import Any

from event_judging.errors import InvalidInput


def parse_id(value: Any, field: str = "id") -> int:
	"""Accept a positive int or its decimal string form (route params, form data)."""
	if isinstance(value, bool):
		raise InvalidInput(f"{field} must be an integer id, got {value!r}")
	if isinstance(value, int):
		parsed = value
	elif isinstance(value, str) and value.strip().isdigit():
		parsed = int(value.strip())
	else:
		raise InvalidInput(f"{field} must be an integer id, got {value!r}")

	if parsed <= 0:
		raise InvalidInput(f"{field} must be positive, got {parsed}")
	return parsed
