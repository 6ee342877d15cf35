from __future__ import annotations

import json
from pathlib import Path

from .policy_tables import ComboRule, Policy, PolicySet
from .state_schema import ProviderId


class PolicyError(ValueError):
    pass


def _threshold(value: object, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PolicyError(f"{where}: threshold must be a number, got {value!r}")
    if value < 0:
        raise PolicyError(f"{where}: threshold must be non-negative, got {value!r}")
    return float(value)


def _attribute(name: object, where: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise PolicyError(f"{where}: attribute names must be non-empty strings")
    return name.strip().upper()


def _parse_combo(raw: object, where: str) -> ComboRule:
    if not isinstance(raw, dict):
        raise PolicyError(f"{where}: combo rule must be an object")
    weights_raw = raw.get("weights")
    if isinstance(weights_raw, list):
        weights = {_attribute(a, where): 1.0 for a in weights_raw}
    elif isinstance(weights_raw, dict):
        weights = {_attribute(a, where): _threshold(w, f"{where}.{a}") for a, w in weights_raw.items()}
    else:
        raise PolicyError(f"{where}: 'weights' must be a list of attributes or an attribute->weight map")
    if not weights:
        raise PolicyError(f"{where}: combo rule has no attributes")
    name = raw.get("name") or "COMBO(" + "+".join(weights) + ")"
    return ComboRule(name=str(name), weights=weights, threshold=_threshold(raw.get("threshold"), where))


def parse_policy(raw: object, where: str) -> Policy:
    if not isinstance(raw, dict):
        raise PolicyError(f"{where}: policy must be an object")
    thresholds_raw = raw.get("thresholds", {})
    if not isinstance(thresholds_raw, dict):
        raise PolicyError(f"{where}: 'thresholds' must be an object")

    thresholds: dict[str, float] = {}
    for attr, value in thresholds_raw.items():
        key = _attribute(attr, where)
        if key in thresholds:
            raise PolicyError(f"{where}: duplicate attribute {key}")
        thresholds[key] = _threshold(value, f"{where}.{key}")

    combos_raw = raw.get("combos", [])
    if not isinstance(combos_raw, list):
        raise PolicyError(f"{where}: 'combos' must be a list")
    combos = tuple(_parse_combo(c, f"{where}.combos[{i}]") for i, c in enumerate(combos_raw))

    if not thresholds and not combos:
        raise PolicyError(f"{where}: policy declares no thresholds and no combos")
    return Policy(thresholds=thresholds, combos=combos)


def load_policy_set(path: Path | str | None, base: PolicySet | None = None) -> PolicySet:
    """Load provider policy slices from a JSON file on top of ``base``.

    Providers the file does not mention keep their slice from ``base``
    (the built-in tables by default).
    """
    base = base or PolicySet.default()
    if path is None:
        return base

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise PolicyError(f"Cannot read policy file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PolicyError(f"Policy file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise PolicyError(f"Policy file {path} must contain an object keyed by provider")

    overrides: dict[ProviderId, Policy] = {}
    for name, raw in data.items():
        try:
            provider = ProviderId(str(name).lower())
        except ValueError:
            raise PolicyError(f"Policy file {path}: unknown provider {name!r}") from None
        if provider is ProviderId.NONE:
            raise PolicyError(f"Policy file {path}: provider 'none' cannot carry a policy")
        overrides[provider] = parse_policy(raw, str(name))
    return base.merged(overrides)
