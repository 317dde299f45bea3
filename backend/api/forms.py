# api/forms.py
# ============================================================================
# Request body decoding: JSON or urlencoded form, bracket keys unflattened
# ============================================================================

import json
import re
from typing import Any
from urllib.parse import parse_qsl

from fastapi import Request


_KEY_PART = re.compile(r"\[([^\]]*)\]")


def _split_key(key: str) -> list[str]:
    head, _, rest = key.partition("[")
    if not rest:
        return [key]
    return [head] + _KEY_PART.findall("[" + rest)


def _listify(node: Any) -> Any:
    # {"0": a, "1": b} -> [a, b]
    if isinstance(node, dict):
        node = {k: _listify(v) for k, v in node.items()}
        if node and all(k.isdigit() for k in node):
            return [node[k] for k in sorted(node, key=int)]
    return node


def unflatten_form(pairs: list[tuple[str, str]]) -> dict[str, Any]:
    """packeta[pointId]=1&items[0][name]=x -> {"packeta": {...}, "items": [{...}]}"""
    root: dict[str, Any] = {}
    for key, value in pairs:
        parts = _split_key(key)
        node = root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        last = parts[-1] or str(len(node))
        node[last] = value
    return _listify(root)


async def read_payload(request: Request) -> dict[str, Any]:
    """Decode a JSON or urlencoded body. Anything else yields an empty dict."""
    body = await request.body()
    if not body:
        return {}
    content_type = request.headers.get("content-type", "").lower()
    text = body.decode("utf-8", errors="replace")

    if "json" in content_type or text.lstrip().startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    return unflatten_form(parse_qsl(text, keep_blank_values=True))
