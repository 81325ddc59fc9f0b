# utils/sentinels.py
from typing import Any, Self, ClassVar, Optional
from pydantic_core import core_schema

class Missing:
	"""A partial-update field the caller left out, as opposed to an explicit None."""
	_instance: ClassVar[Optional["Missing"]] = None

	def __new__(cls) -> Self:
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __repr__(self) -> str:
		return "MISSING"

	def __bool__(self) -> bool:
		return False

	@classmethod
	def __get_pydantic_core_schema__(cls, _source, _handler) -> core_schema.CoreSchema:
		def only_the_sentinel(v):
			if v is not cls._instance:
				raise ValueError("expected the MISSING sentinel")
			return v
		return core_schema.no_info_plain_validator_function(only_the_sentinel)


MISSING = Missing()


def provided(value: Any) -> bool:
	return value is not MISSING
