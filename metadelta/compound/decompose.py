# SPDX-License-Identifier: AGPL-3.0-only
#
# Copyright (c) 2026 Metadelta Contributors
#
# This file is part of Metadelta.
#
# Metadelta is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 only.
#
# Metadelta is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.
# See the GNU Affero General Public License for more details.

"""
Multi-file representation of a composite document.

A document is split into one single-entry document per entry, laid out as

    <out>/<section>/<key>.xml

and composed back by reading every *.xml file below a directory.
"""

import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from metadelta.compound.compose import CanonicalComposer
from metadelta.compound.flatten import DefaultEntryFlattener
from metadelta.document.codec import parse, serialize
from metadelta.document.errors import DocumentError, IdentityCollisionError, ParseError
from metadelta.document.types import Document, FlatEntry
from metadelta.identity.keys import short_digest
from metadelta.identity.tables import DEFAULT_REGISTRY, TypeRegistry

ENTRY_SUFFIX = ".xml"
MAX_STEM_LENGTH = 120

PART_SEPARATOR = "\x1f"

_UNSAFE = re.compile(r"[^A-Za-z0-9._ \-]")


def entry_filename(record: FlatEntry, *, body_keyed: bool = False) -> PurePosixPath:
    """
    Relative file path for one entry.

    The stem is the key made path-safe. A digest of the key parts is
    appended whenever the stem is not the key itself or the key has more
    than one part, so distinct keys never share a file.
    """
    key = str(record.key)
    if body_keyed:
        return PurePosixPath(record.section, f"{record.section}-{short_digest(key)}{ENTRY_SUFFIX}")

    stem = _UNSAFE.sub("_", key).strip(" ")
    if stem.startswith("."):
        stem = "_" + stem[1:]
    if stem != key or not stem or len(stem) > MAX_STEM_LENGTH or len(record.key.parts) > 1:
        stem = f"{stem[:MAX_STEM_LENGTH]}-{short_digest(PART_SEPARATOR.join(record.key.parts))}"
    return PurePosixPath(record.section, f"{stem}{ENTRY_SUFFIX}")


@dataclass(frozen=True, slots=True)
class EntryFile:
    path: PurePosixPath
    document: Document


class DefaultDecomposer:
    def __init__(
        self,
        registry: TypeRegistry = DEFAULT_REGISTRY,
        *,
        flattener: DefaultEntryFlattener | None = None,
        composer: CanonicalComposer | None = None,
    ) -> None:
        self.registry = registry
        self.flattener = flattener or DefaultEntryFlattener()
        self.composer = composer or CanonicalComposer()

    # Pure steps

    def split(self, document: Document) -> tuple[EntryFile, ...]:
        ctype = self.registry.get(document.root_tag)
        out: list[EntryFile] = []
        taken: set[PurePosixPath] = set()
        for r in self.flattener.flatten(document, ctype):
            rel = entry_filename(r, body_keyed=ctype.rule_for(r.section).is_body_keyed)
            if rel in taken:
                raise IdentityCollisionError(r.section, str(r.key))
            taken.add(rel)
            single = Document(root_tag=document.root_tag, sections={r.section: [r.value]}, namespace=document.namespace)
            out.append(EntryFile(path=rel, document=single))
        return tuple(out)

    def join(self, documents: list[Document], *, root_tag: str | None = None) -> Document:
        if root_tag is None:
            if not documents:
                raise DocumentError("Nothing to compose and no root tag given", code="empty_input")
            root_tag = documents[0].root_tag

        ctype = self.registry.get(root_tag)
        namespace = documents[0].namespace if documents else Document.empty(root_tag).namespace

        records: list[FlatEntry] = []
        for doc in documents:
            if doc.root_tag != root_tag:
                raise ParseError(
                    f"Expected root tag {root_tag!r}, found {doc.root_tag!r}",
                    code="root_tag_mismatch",
                )
            records.extend(self.flattener.flatten(doc, ctype))

        return self.composer.compose(records, ctype, namespace=namespace)

    # File system

    def decompose(self, source: str | Path, output_dir: str | Path) -> tuple[Path, ...]:
        """
        Write one file per entry of the composite document at `source`.

        Returns:
            Written paths, in document order
        """
        source = Path(source)
        output_dir = Path(output_dir)

        try:
            files = self.split(parse(source.read_bytes()))
        except DocumentError as e:
            raise e.with_path(str(source))

        written: list[Path] = []
        for f in files:
            target = output_dir / Path(*f.path.parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(serialize(f.document), encoding="utf-8")
            written.append(target)
        return tuple(written)

    def compose(
        self,
        input_dir: str | Path,
        output_file: str | Path,
        *,
        root_tag: str | None = None,
    ) -> Document:
        """
        Compose every *.xml file below `input_dir` into `output_file`.
        """
        input_dir = Path(input_dir)
        output_file = Path(output_file)

        if not input_dir.is_dir():
            raise FileNotFoundError(f"Input directory does not exist: {input_dir}")

        documents: list[Document] = []
        for path in sorted(p for p in input_dir.rglob(f"*{ENTRY_SUFFIX}") if p.is_file()):
            try:
                documents.append(parse(path.read_bytes()))
            except DocumentError as e:
                raise e.with_path(str(path))

        document = self.join(documents, root_tag=root_tag)

        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(serialize(document), encoding="utf-8")
        return document
