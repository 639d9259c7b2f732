from pathlib import PurePosixPath

import pytest
from metadelta.compound.compose import CanonicalComposer
from metadelta.compound.decompose import DefaultDecomposer, entry_filename
from metadelta.compound.flatten import DefaultEntryFlattener
from metadelta.document.codec import parse, serialize
from metadelta.document.errors import DocumentError, IdentityCollisionError, ParseError
from metadelta.document.types import Document, FlatEntry, IdentityKey
from metadelta.identity.tables import DEFAULT_REGISTRY

LABELS = """<?xml version="1.0" encoding="UTF-8"?>
<CustomLabels xmlns="http://soap.sforce.com/2006/04/metadata">
    <labels>
        <fullName>label2</fullName>
        <language>en_US</language>
        <protected>true</protected>
        <shortDescription>Second</shortDescription>
        <value>Two</value>
    </labels>
    <labels>
        <fullName>label1</fullName>
        <language>en_US</language>
        <protected>true</protected>
        <shortDescription>First</shortDescription>
        <value>One</value>
    </labels>
</CustomLabels>
"""

PROFILE = """<?xml version="1.0" encoding="UTF-8"?>
<Profile xmlns="http://soap.sforce.com/2006/04/metadata">
    <userPermissions>
        <enabled>true</enabled>
        <name>ViewSetup</name>
    </userPermissions>
    <custom>false</custom>
    <layoutAssignments>
        <layout>Account-Layout</layout>
        <recordType>Account.Partner</recordType>
    </layoutAssignments>
    <classAccesses>
        <apexClass>MyController</apexClass>
        <enabled>true</enabled>
    </classAccesses>
    <layoutAssignments>
        <layout>Account-Layout</layout>
    </layoutAssignments>
    <loginIpRanges>
        <endAddress>10.0.0.255</endAddress>
        <startAddress>10.0.0.1</startAddress>
    </loginIpRanges>
</Profile>
"""


def canonical(text: str) -> str:
    doc = parse(text)
    ctype = DEFAULT_REGISTRY.get(doc.root_tag)
    return CanonicalComposer().render(DefaultEntryFlattener().flatten(doc, ctype), ctype, namespace=doc.namespace)


def record(section: str, *parts: str) -> FlatEntry:
    return FlatEntry(section=section, key=IdentityKey.of(*parts), body="{}", value={})


class TestEntryFilename:
    def test_plain_key(self):
        assert entry_filename(record("labels", "label1")) == PurePosixPath("labels/label1.xml")

    def test_unsafe_key_gets_digest(self):
        name = entry_filename(record("fieldPermissions", "Account/Name:x")).name
        assert name.startswith("Account_Name_x-")
        assert name.endswith(".xml")

    def test_distinct_keys_distinct_names(self):
        a = entry_filename(record("s", "a/b"))
        b = entry_filename(record("s", "a:b"))
        assert a != b

    def test_typed_parts_never_share_a_file(self):
        joined = entry_filename(record("layoutAssignments", "a.b"))
        split = entry_filename(record("layoutAssignments", "a", "b"))
        assert joined == PurePosixPath("layoutAssignments/a.b.xml")
        assert split != joined
        assert split.name.startswith("a.b-")

    def test_body_keyed(self):
        path = entry_filename(record("somethingNew", '{"x":"1"}'), body_keyed=True)
        assert path.parent == PurePosixPath("somethingNew")
        assert path.name.startswith("somethingNew-")


class TestSplitJoin:
    def test_split_one_document_per_entry(self):
        files = DefaultDecomposer().split(parse(LABELS))
        assert [f.path.as_posix() for f in files] == ["labels/label2.xml", "labels/label1.xml"]
        assert all(len(f.document.entries("labels")) == 1 for f in files)

    def test_split_keeps_keys_that_join_to_the_same_text(self):
        doc = Document(
            root_tag="Profile",
            sections={
                "layoutAssignments": [
                    {"layout": "a", "recordType": "b"},
                    {"layout": "a.b"},
                ]
            },
        )
        files = DefaultDecomposer().split(doc)
        assert len({f.path for f in files}) == 2

    def test_join_rejects_mixed_root_tags(self):
        with pytest.raises(ParseError) as exc:
            DefaultDecomposer().join([Document.empty("CustomLabels"), Document.empty("Profile")])
        assert exc.value.code == "root_tag_mismatch"

    def test_join_empty_needs_root_tag(self):
        with pytest.raises(DocumentError):
            DefaultDecomposer().join([])
        assert DefaultDecomposer().join([], root_tag="CustomLabels").root_tag == "CustomLabels"

    def test_join_rejects_duplicate_entries(self):
        doc = parse(LABELS)
        with pytest.raises(IdentityCollisionError):
            DefaultDecomposer().join([doc, doc])


class TestDecomposeCompose:
    def test_label_scenario(self, tmp_path):
        """Two labels decompose into two files and compose back as label1, label2."""
        source = tmp_path / "CustomLabels.labels-meta.xml"
        source.write_text(LABELS, encoding="utf-8")
        out = tmp_path / "split"

        written = DefaultDecomposer().decompose(source, out)
        assert sorted(p.relative_to(out).as_posix() for p in written) == ["labels/label1.xml", "labels/label2.xml"]

        composed = DefaultDecomposer().compose(out, tmp_path / "composed.xml")
        assert [e["fullName"] for e in composed.entries("labels")] == ["label1", "label2"]

    @pytest.mark.parametrize("text", [LABELS, PROFILE])
    def test_round_trip_is_byte_identical_to_canonical(self, tmp_path, text):
        source = tmp_path / "source.xml"
        source.write_text(text, encoding="utf-8")
        DefaultDecomposer().decompose(source, tmp_path / "split")
        DefaultDecomposer().compose(tmp_path / "split", tmp_path / "out.xml")
        assert (tmp_path / "out.xml").read_text(encoding="utf-8") == canonical(text)

    def test_compose_is_stable(self, tmp_path):
        source = tmp_path / "source.xml"
        source.write_text(PROFILE, encoding="utf-8")
        DefaultDecomposer().decompose(source, tmp_path / "split")
        first = serialize(DefaultDecomposer().compose(tmp_path / "split", tmp_path / "a.xml"))
        second = serialize(DefaultDecomposer().compose(tmp_path / "split", tmp_path / "b.xml"))
        assert first == second == canonical(PROFILE)

    def test_compose_empty_directory_with_type(self, tmp_path):
        (tmp_path / "empty").mkdir()
        doc = DefaultDecomposer().compose(tmp_path / "empty", tmp_path / "out.xml", root_tag="CustomLabels")
        assert doc.section_names() == ()
        assert (tmp_path / "out.xml").read_text(encoding="utf-8").startswith('<?xml version="1.0"')

    def test_compose_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DefaultDecomposer().compose(tmp_path / "nope", tmp_path / "out.xml")

    def test_decompose_reports_path_on_parse_error(self, tmp_path):
        source = tmp_path / "broken.xml"
        source.write_text("<CustomLabels>", encoding="utf-8")
        with pytest.raises(ParseError) as exc:
            DefaultDecomposer().decompose(source, tmp_path / "split")
        assert exc.value.path == str(source)
