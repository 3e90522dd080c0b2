"""
PlanRegistry - find, parse and cache plan definitions.

Plans live as YAML or JSON files below a definitions directory; the file
name (without suffix) is the plan id:

    plans/
        volume/
            volume-create-0.7.0.yaml
            volume-create-0.6.0.yaml
        _deprecated/
            volume-create-0.5.0.yaml     # never loaded

When both a YAML and a JSON file exist for a plan, YAML wins. Loaded plans
are cached by id; compute_hash() gives the sha256 of a plan's canonical
JSON form, shown by `taskgroup plans show`.
"""

import hashlib
import json
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml

from taskgroup.schemas import PlanDef

SUFFIXES = (".yaml", ".yml", ".json")
DEPRECATED_DIR = "_deprecated"


class PlanNotFoundError(Exception):
    """No definition exists for a plan id (or not in the requested version)."""
    pass


class PlanValidationError(Exception):
    """A definition exists but cannot be turned into a PlanDef."""
    pass


def _read_definition(path: Path) -> Any:
    text = path.read_text()
    if path.suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


class PlanRegistry:
    """
    Loads PlanDefs by id from a definitions directory.

    Usage:
        plans = PlanRegistry("~/.config/taskgroup/plans")
        plan_def = plans.load("volume-create-0.7.0")

        # every plan a run could end up in
        plans.fallback_chain("volume-create-0.7.0")
    """

    def __init__(self, definitions_dir: Path | str):
        self._root = Path(definitions_dir).expanduser()
        self._plans: dict[str, PlanDef] = {}

    @property
    def definitions_dir(self) -> Path:
        return self._root

    def _definition_files(self) -> Iterator[Path]:
        if not self._root.is_dir():
            return
        for path in sorted(self._root.rglob("*")):
            if path.suffix in SUFFIXES and DEPRECATED_DIR not in path.parts and path.is_file():
                yield path

    def _locate(self, plan_id: str) -> Optional[Path]:
        candidates = [p for p in self._definition_files() if p.stem == plan_id]
        # yaml before json, then the shallowest file
        candidates.sort(key=lambda p: (SUFFIXES.index(p.suffix), len(p.parts)))
        return candidates[0] if candidates else None

    def load(self, plan_id: str, version: Optional[str] = None) -> PlanDef:
        """
        Load a plan by id.

        Args:
            plan_id: File name of the definition, without suffix
            version: Required plan version; None or "latest" accepts any
                and serves the plan from cache when possible

        Raises:
            PlanNotFoundError: If no definition exists, or its version differs
            PlanValidationError: If the definition cannot be parsed
        """
        pinned = version not in (None, "latest")
        if not pinned and plan_id in self._plans:
            return self._plans[plan_id]

        path = self._locate(plan_id)
        if path is None:
            raise PlanNotFoundError(f"Plan definition not found: {plan_id}")

        try:
            data = _read_definition(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise PlanValidationError(f"Failed to load {path}: {e}") from e

        try:
            plan_def = PlanDef.from_dict(data)
        except Exception as e:
            raise PlanValidationError(f"Invalid PlanDef in {path}: {e}") from e

        if plan_def.plan_id != plan_id:
            raise PlanValidationError(
                f"Plan ID mismatch: file is '{plan_id}' but plan_id is '{plan_def.plan_id}'"
            )

        if pinned and plan_def.version != version:
            raise PlanNotFoundError(
                f"Version mismatch for {plan_id}: requested '{version}', found '{plan_def.version}'"
            )

        self._plans[plan_id] = plan_def
        return plan_def

    def list_plans(self) -> list[str]:
        """Sorted ids of all plans in the definitions directory."""
        return sorted({p.stem for p in self._definition_files()})

    def fallback_chain(self, plan_id: str) -> list[str]:
        """
        Follow the fallback links starting at a plan.

        Returns:
            Plan ids in the order a run would try them

        Raises:
            PlanNotFoundError, PlanValidationError: For any plan in the chain
            PlanValidationError: If the chain loops back on itself
        """
        chain: list[str] = []
        current = plan_id
        while current:
            if current in chain:
                raise PlanValidationError(f"fallback cycle: {' -> '.join(chain + [current])}")
            chain.append(current)
            current = self.load(current).fallback
        return chain

    @staticmethod
    def compute_hash(plan_def: PlanDef) -> str:
        """sha256 over the plan as compact JSON with sorted keys."""
        canonical = json.dumps(plan_def.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
