#!/usr/bin/env python3
"""
Generate a Mermaid ER diagram of an import mapping.

The script registers every class of a SQLAlchemy declarative base, resolves
their import metadata and emits a Mermaid `erDiagram` listing attributes
(with import keys and the import primary key) and relationships labelled with
their merge policy.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from entity_importer.diagram import write_mermaid
from entity_importer.schema import EntityRegistry, load_object


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--models",
        required=True,
        help="Declarative base to describe, as 'package.module:Base'.",
    )
    parser.add_argument(
        "--output",
        default=Path("docs/import-map.mmd"),
        type=Path,
        help="Path of the generated Mermaid diagram.",
    )
    args = parser.parse_args()

    registry = EntityRegistry()
    registry.register_base(load_object(args.models))
    write_mermaid(registry, args.output)


if __name__ == "__main__":
    main()
