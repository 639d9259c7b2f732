import logging

import pytest
from metadelta.core.config import DeltaConfig
from metadelta.delta.dispatch import DEFAULT_SOURCE_ROOT
from metadelta.delta.orchestrator import DeltaOrchestrator, WorkItem
from metadelta.delta.types import PackageKind, StrategyKind
from metadelta.document.codec import parse
from metadelta.document.errors import ParseError
from metadelta.vcs.git import VCSLookupError
from metadelta.vcs.types import ChangeStatus, StatusEntry

ROOT = DEFAULT_SOURCE_ROOT
LABELS_PATH = f"{ROOT}/labels/CustomLabels.labels-meta.xml"
PROFILE_PATH = f"{ROOT}/profiles/Admin.profile-meta.xml"
RECORD_TYPE_PATH = f"{ROOT}/objects/Account/recordTypes/Partner.recordType-meta.xml"


# Helpers


def labels_xml(**values: str) -> bytes:
    entries = "".join(
        f"<labels><fullName>{k}</fullName><language>en_US</language><value>{v}</value></labels>"
        for k, v in values.items()
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<CustomLabels xmlns="http://soap.sforce.com/2006/04/metadata">{entries}</CustomLabels>'
    ).encode("utf-8")


def profile_xml(*classes: str) -> bytes:
    entries = "".join(f"<classAccesses><apexClass>{c}</apexClass><enabled>true</enabled></classAccesses>" for c in classes)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<Profile xmlns="http://soap.sforce.com/2006/04/metadata"><custom>false</custom>{entries}</Profile>'
    ).encode("utf-8")


def record_type_xml(label: str, *picklists: str) -> bytes:
    values = "".join(
        f"<picklistValues><picklist>{p}</picklist><values><fullName>A</fullName><default>false</default></values></picklistValues>"
        for p in picklists
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<RecordType xmlns="http://soap.sforce.com/2006/04/metadata">'
        f"<fullName>Partner</fullName><active>true</active><label>{label}</label>{values}"
        "</RecordType>"
    ).encode("utf-8")


class FakeVCS:
    """In-memory stand-in for GitVCSProvider: revisions map ref -> {path: content}."""

    def __init__(self, entries, revisions):
        self.entries = list(entries)
        self.revisions = revisions

    def status_list(self, repo_root, from_ref, to_ref=None):
        return list(self.entries)

    def show(self, repo_root, ref, path):
        try:
            return self.revisions[ref][path]
        except KeyError:
            raise VCSLookupError(f"Path {path!r} does not exist at {ref!r}") from None

    def exists_at(self, repo_root, ref, path):
        return path in self.revisions.get(ref, {})

    def list_files(self, repo_root, ref, directory):
        prefix = directory.rstrip("/") + "/"
        return sorted(p for p in self.revisions.get(ref, {}) if p.startswith(prefix))

    def resolve_ref(self, repo_root, ref):
        return f"{ref}-sha"


def M(path):
    return StatusEntry(status=ChangeStatus.MODIFIED, path=path)


def A(path):
    return StatusEntry(status=ChangeStatus.ADDED, path=path)


def D(path):
    return StatusEntry(status=ChangeStatus.DELETED, path=path)


def run(tmp_path, entries, old, new, *, destructive=True, jobs=1, out="out"):
    vcs = FakeVCS(entries, {"base": old, "head": new})
    cfg = DeltaConfig(
        repo_root=tmp_path,
        from_ref="base",
        to_ref="head",
        package_dir=tmp_path / out / "package",
        destructive_dir=(tmp_path / out / "destructive") if destructive else None,
        jobs=jobs,
    )
    return DeltaOrchestrator(vcs=vcs).run(cfg), cfg


def labels_in(path):
    return [e["fullName"] for e in parse(path.read_bytes()).entries("labels")]


# Plan


class TestPlan:
    def test_rename_becomes_delete_plus_add(self):
        entry = StatusEntry(status=ChangeStatus.RENAMED, path=f"{ROOT}/classes/Old.cls", new_path=f"{ROOT}/classes/New.cls", score=100)
        items = DeltaOrchestrator(vcs=FakeVCS([], {})).plan([entry])
        assert items == [
            WorkItem(path=f"{ROOT}/classes/Old.cls", status=ChangeStatus.DELETED),
            WorkItem(path=f"{ROOT}/classes/New.cls", status=ChangeStatus.RENAMED, renamed_from=f"{ROOT}/classes/Old.cls"),
        ]

    def test_rename_into_source_root(self):
        entry = StatusEntry(status=ChangeStatus.RENAMED, path="tmp/New.cls", new_path=f"{ROOT}/classes/New.cls")
        items = DeltaOrchestrator(vcs=FakeVCS([], {})).plan([entry])
        assert [i.status for i in items] == [ChangeStatus.RENAMED]

    def test_paths_outside_source_root_ignored(self):
        items = DeltaOrchestrator(vcs=FakeVCS([], {})).plan([M("README.md"), M(f"{ROOT}/classes/A.cls")])
        assert [i.path for i in items] == [f"{ROOT}/classes/A.cls"]

    def test_source_root_applies_to_one_run_only(self, tmp_path):
        path = "src/labels/CustomLabels.labels-meta.xml"
        revisions = {"base": {path: labels_xml(a="1")}, "head": {path: labels_xml(a="2")}}
        orch = DeltaOrchestrator(vcs=FakeVCS([M(path)], revisions))
        cfg = DeltaConfig(
            repo_root=tmp_path,
            from_ref="base",
            to_ref="head",
            package_dir=tmp_path / "out",
            source_root="src",
        )

        report = orch.run(cfg)

        assert [o.path for o in report.outcomes] == [path]
        assert report.metadata["source_root"] == "src"
        assert orch.table.source_root == ROOT
        assert orch.plan([M(path)]) == []

    def test_copy_is_new_path(self):
        entry = StatusEntry(status=ChangeStatus.COPIED, path=f"{ROOT}/classes/A.cls", new_path=f"{ROOT}/classes/B.cls")
        items = DeltaOrchestrator(vcs=FakeVCS([], {})).plan([entry])
        assert items == [WorkItem(path=f"{ROOT}/classes/B.cls", status=ChangeStatus.COPIED)]


# Compound diff


class TestCompoundDiff:
    def test_changed_and_removed_labels(self, tmp_path):
        report, cfg = run(
            tmp_path,
            [M(LABELS_PATH)],
            {LABELS_PATH: labels_xml(label1="One", label2="Two")},
            {LABELS_PATH: labels_xml(label1="Uno", label3="Three")},
        )
        (outcome,) = report.outcomes
        assert outcome.ok
        assert outcome.strategy == StrategyKind.COMPOUND_DIFF
        assert (outcome.changed_entries, outcome.removed_entries) == (2, 1)
        assert labels_in(cfg.package_dir / LABELS_PATH) == ["label1", "label3"]
        assert labels_in(cfg.destructive_dir / LABELS_PATH) == ["label2"]

    def test_deleted_entry_only(self, tmp_path):
        """old {A, B}, new {A}: no change file, B in the destructive package."""
        report, cfg = run(
            tmp_path,
            [M(LABELS_PATH)],
            {LABELS_PATH: labels_xml(A="1", B="2")},
            {LABELS_PATH: labels_xml(A="1")},
        )
        assert report.outcomes[0].note == "no entry changes"
        assert not (cfg.package_dir / LABELS_PATH).exists()
        assert labels_in(cfg.destructive_dir / LABELS_PATH) == ["B"]

    def test_no_destructive_dir(self, tmp_path):
        report, cfg = run(
            tmp_path,
            [M(LABELS_PATH)],
            {LABELS_PATH: labels_xml(A="1", B="2")},
            {LABELS_PATH: labels_xml(A="x")},
            destructive=False,
        )
        assert [w.package for w in report.outcomes[0].writes] == [PackageKind.CHANGE]

    def test_non_destructive_type_keeps_removals_out(self, tmp_path):
        report, cfg = run(
            tmp_path,
            [M(PROFILE_PATH)],
            {PROFILE_PATH: profile_xml("A", "B")},
            {PROFILE_PATH: profile_xml("A", "C")},
        )
        (outcome,) = report.outcomes
        assert outcome.removed_entries == 1
        assert [w.package for w in outcome.writes] == [PackageKind.CHANGE]
        doc = parse((cfg.package_dir / PROFILE_PATH).read_bytes())
        assert doc.entries("classAccesses") == [{"apexClass": "C", "enabled": "true"}]

    def test_added_file_diffs_against_empty(self, tmp_path):
        report, cfg = run(tmp_path, [A(LABELS_PATH)], {}, {LABELS_PATH: labels_xml(b="2", a="1")})
        assert report.outcomes[0].changed_entries == 2
        assert labels_in(cfg.package_dir / LABELS_PATH) == ["a", "b"]

    def test_record_type_always_included(self, tmp_path):
        report, cfg = run(
            tmp_path,
            [M(RECORD_TYPE_PATH)],
            {RECORD_TYPE_PATH: record_type_xml("Partner", "Type", "Rating")},
            {RECORD_TYPE_PATH: record_type_xml("Partner", "Type", "Industry")},
        )
        doc = parse((cfg.package_dir / RECORD_TYPE_PATH).read_bytes())
        assert doc.section_names() == ("fullName", "active", "label", "picklistValues")
        assert [e["picklist"] for e in doc.entries("picklistValues")] == ["Industry"]
        assert not (cfg.destructive_dir / RECORD_TYPE_PATH).exists()

    def test_record_type_only_always_included_is_skipped(self, tmp_path):
        report, cfg = run(
            tmp_path,
            [M(RECORD_TYPE_PATH)],
            {RECORD_TYPE_PATH: record_type_xml("Partner", "Type")},
            {RECORD_TYPE_PATH: record_type_xml("Partner", "Type")},
        )
        assert report.outcomes[0].ok
        assert report.outcomes[0].writes == ()
        assert not (cfg.package_dir / RECORD_TYPE_PATH).exists()

    def test_record_type_label_change_is_written(self, tmp_path):
        report, cfg = run(
            tmp_path,
            [M(RECORD_TYPE_PATH)],
            {RECORD_TYPE_PATH: record_type_xml("Partner", "Type")},
            {RECORD_TYPE_PATH: record_type_xml("Partner Renamed", "Type")},
        )
        (outcome,) = report.outcomes
        assert outcome.note is None
        assert [w.package for w in outcome.writes] == [PackageKind.CHANGE]
        doc = parse((cfg.package_dir / RECORD_TYPE_PATH).read_bytes())
        assert doc.section_names() == ("fullName", "active", "label")
        assert doc.entries("label") == ["Partner Renamed"]

    def test_idempotent(self, tmp_path):
        old = {LABELS_PATH: labels_xml(b="2", a="1", c="3")}
        new = {LABELS_PATH: labels_xml(c="x", a="1", d="4")}
        _, first = run(tmp_path, [M(LABELS_PATH)], old, new, out="one")
        _, second = run(tmp_path, [M(LABELS_PATH)], old, new, out="two")
        for attr in ("package_dir", "destructive_dir"):
            a = (getattr(first, attr) / LABELS_PATH).read_bytes()
            b = (getattr(second, attr) / LABELS_PATH).read_bytes()
            assert a == b

    def test_root_tag_mismatch(self):
        orch = DeltaOrchestrator(vcs=FakeVCS([], {}))
        with pytest.raises(ParseError) as exc:
            orch.diff_documents(parse(labels_xml()), parse(profile_xml()), root_tag="CustomLabels")
        assert exc.value.code == "root_tag_mismatch"


# Verbatim, bundles, deletions


class TestCopies:
    def test_rename(self, tmp_path):
        old_path = f"{ROOT}/classes/Old.cls"
        new_path = f"{ROOT}/classes/New.cls"
        entry = StatusEntry(status=ChangeStatus.RENAMED, path=old_path, new_path=new_path, score=100)
        report, cfg = run(tmp_path, [entry], {old_path: b"class Old {}"}, {new_path: b"class New {}"})
        assert [o.status for o in report.outcomes] == [ChangeStatus.DELETED, ChangeStatus.RENAMED]
        assert (cfg.destructive_dir / old_path).read_bytes() == b"class Old {}"
        assert (cfg.package_dir / new_path).read_bytes() == b"class New {}"
        assert report.outcomes[1].renamed_from == old_path

    def test_deletion_without_destructive_dir(self, tmp_path):
        path = f"{ROOT}/classes/Gone.cls"
        report, _ = run(tmp_path, [D(path)], {path: b"x"}, {}, destructive=False)
        (outcome,) = report.outcomes
        assert outcome.ok
        assert outcome.writes == ()
        assert outcome.note == "no destructive directory requested"

    def test_meta_sidecar(self, tmp_path):
        path = f"{ROOT}/classes/Foo.cls"
        new = {path: b"class Foo {}", path + "-meta.xml": b"<ApexClass/>"}
        report, cfg = run(tmp_path, [M(path)], new, new)
        assert (cfg.package_dir / (path + "-meta.xml")).read_bytes() == b"<ApexClass/>"
        assert len(report.outcomes[0].writes) == 2

    def test_bundle_copy(self, tmp_path):
        bundle = f"{ROOT}/lwc/myCmp"
        new = {
            f"{bundle}/myCmp.js": b"js",
            f"{bundle}/myCmp.html": b"html",
            f"{bundle}/myCmp.js-meta.xml": b"meta",
            f"{ROOT}/lwc/other/other.js": b"other",
        }
        report, cfg = run(tmp_path, [M(f"{bundle}/myCmp.js")], new, new)
        written = sorted(w.path for w in report.outcomes[0].writes)
        assert written == sorted(p for p in new if p.startswith(bundle + "/"))
        assert not (cfg.package_dir / f"{ROOT}/lwc/other/other.js").exists()

    def test_static_resource_companion(self, tmp_path):
        new = {
            f"{ROOT}/staticresources/img/a.png": b"a",
            f"{ROOT}/staticresources/img/b.png": b"b",
            f"{ROOT}/staticresources/img.resource-meta.xml": b"meta",
        }
        report, cfg = run(tmp_path, [M(f"{ROOT}/staticresources/img/a.png")], new, new)
        assert (cfg.package_dir / f"{ROOT}/staticresources/img.resource-meta.xml").read_bytes() == b"meta"
        assert (cfg.package_dir / f"{ROOT}/staticresources/img/b.png").exists()

    def test_missing_companion_skipped(self, tmp_path):
        path = f"{ROOT}/objectTranslations/Account-es/Name__c.fieldTranslation-meta.xml"
        report, cfg = run(tmp_path, [M(path)], {path: b"x"}, {path: b"y"})
        assert report.outcomes[0].ok
        assert [w.path for w in report.outcomes[0].writes] == [path]


# Failures and concurrency


class TestFailures:
    def test_one_bad_file_does_not_stop_others(self, tmp_path, caplog):
        good = f"{ROOT}/classes/Good.cls"
        old = {LABELS_PATH: labels_xml(a="1"), good: b"old"}
        new = {LABELS_PATH: b"<CustomLabels><labels>", good: b"new"}
        with caplog.at_level(logging.ERROR, logger="metadelta"):
            report, cfg = run(tmp_path, [M(LABELS_PATH), M(good)], old, new)

        bad, ok = report.outcomes
        assert not bad.ok
        assert bad.error_type == "ParseError"
        assert LABELS_PATH in bad.error
        assert ok.ok
        assert (cfg.package_dir / good).read_bytes() == b"new"
        assert len(report.failed) == 1
        assert LABELS_PATH in caplog.text

    def test_missing_previous_revision(self, tmp_path):
        report, _ = run(tmp_path, [M(LABELS_PATH)], {}, {LABELS_PATH: labels_xml(a="1")})
        assert report.outcomes[0].error_type == "VCSLookupError"

    def test_duplicate_key_is_per_file_error(self, tmp_path):
        duplicated = b"<CustomLabels><labels><fullName>a</fullName></labels><labels><fullName>a</fullName></labels></CustomLabels>"
        report, _ = run(tmp_path, [M(LABELS_PATH)], {LABELS_PATH: labels_xml()}, {LABELS_PATH: duplicated})
        assert report.outcomes[0].error_type == "IdentityCollisionError"

    def test_status_list_failure_propagates(self, tmp_path):
        class Broken(FakeVCS):
            def status_list(self, repo_root, from_ref, to_ref=None):
                raise VCSLookupError("bad revision")

        cfg = DeltaConfig(repo_root=tmp_path, from_ref="nope", package_dir=tmp_path / "out")
        with pytest.raises(VCSLookupError):
            DeltaOrchestrator(vcs=Broken([], {})).run(cfg)

    def test_parallel_matches_sequential(self, tmp_path):
        paths = [f"{ROOT}/classes/C{i}.cls" for i in range(8)]
        old = {p: b"old" for p in paths}
        new = {p: p.encode() for p in paths}
        entries = [M(p) for p in paths] + [M(LABELS_PATH)]
        old[LABELS_PATH] = labels_xml(a="1", b="2")
        new[LABELS_PATH] = labels_xml(a="2")
        seq, _ = run(tmp_path, entries, old, new, out="seq")
        par, _ = run(tmp_path, entries, old, new, out="par", jobs=4)
        assert [o.path for o in par.outcomes] == [o.path for o in seq.outcomes]
        assert [o.writes for o in par.outcomes] == [o.writes for o in seq.outcomes]


class TestWorkingTree:
    def test_new_revision_from_working_tree(self, tmp_path):
        path = f"{ROOT}/classes/Foo.cls"
        target = tmp_path.joinpath(*path.split("/"))
        target.parent.mkdir(parents=True)
        target.write_bytes(b"on disk")

        vcs = FakeVCS([M(path)], {"base": {path: b"committed"}})
        cfg = DeltaConfig(repo_root=tmp_path, from_ref="base", package_dir=tmp_path / "pkg")
        report = DeltaOrchestrator(vcs=vcs).run(cfg)

        assert report.to_ref is None
        assert report.from_commit == "base-sha"
        assert report.metadata["new_revision"] == "working tree"
        assert (cfg.package_dir / path).read_bytes() == b"on disk"
