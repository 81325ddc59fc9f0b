# i18n.py
import json
from pathlib import Path
from typing import Any, ClassVar, Optional
from event_judging.config import Settings

LOCALES_DIR = Path(__file__).parent / "data" / "locales"


def _flatten(prefix: str, node: Any, out: dict[str, str]) -> None:
	if isinstance(node, dict):
		for k, v in node.items():
			_flatten(f"{prefix}.{k}", v, out)
	elif isinstance(node, str):
		out[prefix] = node


class Localizer:
	"""
	User-facing message templates, one JSON tree per file under
	data/locales/<language>/. ``errors.json -> {"locked": ...}`` is the key
	``errors.locked``. A language is read from disk once per process.
	"""
	_catalogs: ClassVar[dict[str, dict[str, str]]] = {}

	def __init__(self, lang: Optional[str] = None):
		self.lang = lang or Settings().default_language
		self._messages = self._catalog(self.lang)

	@classmethod
	def _catalog(cls, lang: str) -> dict[str, str]:
		if lang not in cls._catalogs:
			root = LOCALES_DIR / lang
			if not root.is_dir():
				raise KeyError(f"No messages for language {lang!r} under {LOCALES_DIR}")

			messages: dict[str, str] = {}
			for path in sorted(root.rglob("*.json")):
				prefix = ".".join(path.relative_to(root).with_suffix("").parts)
				with open(path, encoding="utf-8") as file:
					_flatten(prefix, json.load(file), messages)
			cls._catalogs[lang] = messages
		return cls._catalogs[lang]

	def get(self, key: str, **kwargs: Any) -> str:
		template = self._messages.get(key)
		if template is None:
			raise KeyError(f"Message {key} not found for language {self.lang}")
		return template.format(**kwargs)

	def __call__(self, key: str, **kwargs: Any) -> str:
		return self.get(key, **kwargs)
