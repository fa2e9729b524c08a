"""Reading and summarising ARM deployment outputs."""

from typing import Any, Dict, List, Tuple

MISSING = "N/A"


def output_value(outputs: Dict[str, Any], key: str, default: Any = MISSING) -> Any:
    """Return ``outputs[key].value``; ``key`` may be dotted into object outputs."""
    head, _, rest = key.partition(".")
    entry = outputs.get(head)
    if not isinstance(entry, dict) or "value" not in entry:
        return default
    value = entry["value"]
    for part in rest.split(".") if rest else []:
        if not isinstance(value, dict) or part not in value:
            return default
        value = value[part]
    return default if value is None else value


def plain_outputs(outputs: Dict[str, Any]) -> Dict[str, Any]:
    """Strip the ``{"type", "value"}`` envelope from every output."""
    return {
        key: entry.get("value") if isinstance(entry, dict) else entry
        for key, entry in outputs.items()
    }


def flatten(value: Any, prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested object outputs into ``(dotted.key, text)`` rows."""
    if isinstance(value, dict):
        rows: List[Tuple[str, str]] = []
        for key, item in value.items():
            rows.extend(flatten(item, f"{prefix}.{key}" if prefix else str(key)))
        return rows
    if isinstance(value, list):
        return [(prefix, ", ".join(str(item) for item in value))]
    if isinstance(value, bool):
        return [(prefix, "true" if value else "false")]
    return [(prefix, str(value))]
