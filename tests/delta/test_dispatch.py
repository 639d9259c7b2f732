import pytest
from metadelta.delta.dispatch import DEFAULT_SOURCE_ROOT, StrategyTable
from metadelta.delta.types import VERBATIM_FALLBACK, StrategyDescriptor, StrategyKind

ROOT = DEFAULT_SOURCE_ROOT


def p(rel: str) -> str:
    return f"{ROOT}/{rel}"


class TestScope:
    def test_paths_outside_source_root(self):
        table = StrategyTable()
        assert not table.in_scope("README.md")
        assert not table.in_scope("force-app/main/other/labels/x.xml")
        assert table.in_scope(p("labels/CustomLabels.labels-meta.xml"))

    def test_whole_repository_root(self):
        table = StrategyTable(source_root=".")
        assert table.source_root == ""
        assert table.in_scope("labels/CustomLabels.labels-meta.xml")
        assert table.resolve("labels/CustomLabels.labels-meta.xml").kind == StrategyKind.COMPOUND_DIFF


class TestMatch:
    @pytest.mark.parametrize(
        "rel, kind, root_tag",
        [
            ("labels/CustomLabels.labels-meta.xml", StrategyKind.COMPOUND_DIFF, "CustomLabels"),
            ("profiles/Admin.profile-meta.xml", StrategyKind.COMPOUND_DIFF, "Profile"),
            ("permissionsets/Ps.permissionset-meta.xml", StrategyKind.COMPOUND_DIFF, "PermissionSet"),
            ("workflows/Case.workflow-meta.xml", StrategyKind.COMPOUND_DIFF, "Workflow"),
            ("objects/Account/recordTypes/Partner.recordType-meta.xml", StrategyKind.COMPOUND_DIFF, "RecordType"),
            ("objects/Account/fields/Name__c.field-meta.xml", StrategyKind.VERBATIM, None),
            ("lwc/myCmp/myCmp.js", StrategyKind.BUNDLE_COPY, None),
            ("classes/Foo.cls", StrategyKind.VERBATIM, None),
        ],
    )
    def test_builtin_table(self, rel, kind, root_tag):
        res = StrategyTable().resolve(p(rel))
        assert res.kind == kind
        assert res.descriptor.root_tag == root_tag

    def test_unmatched_falls_back_to_verbatim(self):
        res = StrategyTable().resolve(p("classes/Foo.cls"))
        assert res.descriptor is VERBATIM_FALLBACK
        assert res.match_dir is None
        assert res.companion_path() is None

    def test_more_segments_win(self):
        table = StrategyTable()
        assert table.match(p("objects/Account/recordTypes/Rt.recordType-meta.xml")).pattern == "objects/*/recordTypes"
        assert table.match(p("objects/Account/Account.object-meta.xml")).pattern == "objects"

    def test_literal_segments_beat_wildcards(self):
        table = StrategyTable(
            [
                StrategyDescriptor(pattern="objects/*", kind=StrategyKind.VERBATIM),
                StrategyDescriptor(pattern="objects/Account", kind=StrategyKind.BUNDLE_COPY),
            ]
        )
        assert table.match(p("objects/Account/x.xml")).pattern == "objects/Account"
        assert table.match(p("objects/Case/x.xml")).pattern == "objects/*"

    def test_earliest_wins_ties(self):
        first = StrategyDescriptor(pattern="a*", kind=StrategyKind.VERBATIM)
        second = StrategyDescriptor(pattern="*b", kind=StrategyKind.BUNDLE_COPY)
        assert StrategyTable([first, second]).match(p("ab/x.xml")) is first

    def test_pattern_only_matches_directories(self):
        assert StrategyTable().match(p("labels")) is None


class TestResolution:
    def test_bundle_folder(self):
        res = StrategyTable().resolve(p("aura/myCmp/myCmpController.js"))
        assert res.match_dir == p("aura")
        assert res.bundle_dir == p("aura/myCmp")

    def test_nested_bundle_file(self):
        res = StrategyTable().resolve(p("staticresources/img/icons/a.png"))
        assert res.bundle_dir == p("staticresources/img")
        assert res.companion_path() == p("staticresources/img.resource-meta.xml")

    def test_single_file_static_resource(self):
        res = StrategyTable().resolve(p("staticresources/logo.resource"))
        assert res.bundle_dir is None
        assert res.companion_path() == p("staticresources/logo.resource-meta.xml")

    def test_static_resource_descriptor_has_no_companion(self):
        res = StrategyTable().resolve(p("staticresources/logo.resource-meta.xml"))
        assert res.companion_path() is None

    def test_object_translation_companion(self):
        res = StrategyTable().resolve(p("objectTranslations/Account-es/Name__c.fieldTranslation-meta.xml"))
        assert res.kind == StrategyKind.VERBATIM
        assert res.companion_path() == p("objectTranslations/Account-es/Account-es.objectTranslation-meta.xml")

    def test_object_translation_descriptor_itself(self):
        res = StrategyTable().resolve(p("objectTranslations/Account-es/Account-es.objectTranslation-meta.xml"))
        assert res.companion_path() is None


class TestExtended:
    def test_extra_descriptor_added(self):
        extra = StrategyDescriptor(pattern="escalationRules", kind=StrategyKind.COMPOUND_DIFF, root_tag="EscalationRules")
        table = StrategyTable().extended([extra])
        assert table.match(p("escalationRules/Case.escalationRules-meta.xml")) is extra

    def test_same_pattern_replaces_builtin(self):
        extra = StrategyDescriptor(pattern="labels", kind=StrategyKind.VERBATIM)
        table = StrategyTable().extended([extra], source_root="src")
        assert table.source_root == "src"
        assert table.match("src/labels/CustomLabels.labels-meta.xml") is extra
        assert sum(1 for d in table.descriptors if d.pattern == "labels") == 1

    def test_unknown_companion_rejected(self):
        with pytest.raises(ValueError):
            StrategyTable([StrategyDescriptor(pattern="x", kind=StrategyKind.VERBATIM, companion="nope")])
