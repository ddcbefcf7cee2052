"""Render the registered import mapping as a Mermaid ER diagram."""

from __future__ import annotations

from pathlib import Path
from typing import List

from .models import Cardinality
from .schema import EntityRegistry


def build_mermaid(registry: EntityRegistry) -> str:
    lines: List[str] = ["erDiagram"]
    kinds = [registry.resolve(name) for name in registry.kind_names]

    for kind in kinds:
        lines.append(f"    {kind.name} {{")
        for attribute in kind.attributes:
            suffix = " PK" if attribute.is_primary_key else ""
            comment = ""
            if attribute.import_key != attribute.name:
                comment = f' "{attribute.import_key}"'
            lines.append(
                f"        {attribute.native_type.value} {attribute.name}{suffix}{comment}"
            )
        lines.append("    }")

    for kind in kinds:
        for relationship in kind.relationships:
            symbol = "o{" if relationship.cardinality is Cardinality.TO_MANY else "o|"
            lines.append(
                f"    {kind.name} ||--{symbol} {relationship.target} : "
                f'"{relationship.import_key} ({relationship.merge_policy.value})"'
            )

    return "\n".join(lines) + "\n"


def write_mermaid(registry: EntityRegistry, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(build_mermaid(registry), encoding="utf-8")
