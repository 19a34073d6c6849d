"""Tests for policy document models and their JSON form."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from policycore import (
    ADMIN_POLICY,
    DEVELOPER_POLICY,
    VIEWER_POLICY,
    APIVerb,
    InvalidPolicyError,
    NameOrUInt,
    PermissionScope,
    PolicyDocument,
    RequestAction,
    dump_policy,
    parse_policy,
)

P = PermissionScope
V = APIVerb


class TestNameOrUInt:
    """Tests for the resource identifier."""

    def test_name_variant(self) -> None:
        ident = NameOrUInt(name="default")
        assert ident.uint == 0
        assert str(ident) == "default"
        assert not ident.is_empty

    def test_uint_variant(self) -> None:
        ident = NameOrUInt(uint=42)
        assert ident.name == ""
        assert str(ident) == "42"

    def test_empty(self) -> None:
        assert NameOrUInt().is_empty

    def test_both_variants_rejected(self) -> None:
        with pytest.raises(ValidationError, match="either name or uint"):
            NameOrUInt(name="default", uint=1)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NameOrUInt(uint=-1)

    def test_equality_is_structural(self) -> None:
        assert NameOrUInt(uint=1) == NameOrUInt(uint=1)
        assert NameOrUInt(uint=1) != NameOrUInt(name="1")

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            NameOrUInt(uint=1).uint = 2  # type: ignore[misc]


class TestPolicyDocument:
    """Tests for PolicyDocument construction."""

    def test_defaults(self) -> None:
        doc = PolicyDocument(scope=P.PROJECT)
        assert doc.resources == ()
        assert doc.verbs == frozenset()
        assert doc.children == {}

    def test_nulls_mean_empty(self) -> None:
        doc = PolicyDocument.model_validate(
            {"scope": "project", "resources": None, "verbs": None, "children": None}
        )
        assert doc == PolicyDocument(scope=P.PROJECT)

    def test_string_values_coerced(self) -> None:
        doc = PolicyDocument.model_validate(
            {"scope": "cluster", "verbs": ["get", "list"], "resources": [{"uint": 3}]}
        )
        assert doc.scope is P.CLUSTER
        assert doc.verbs == {V.GET, V.LIST}
        assert doc.resources == (NameOrUInt(uint=3),)

    def test_unknown_scope_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PolicyDocument.model_validate({"scope": "organization"})

    def test_children_read_only(self) -> None:
        doc = PolicyDocument(scope=P.PROJECT, children={P.CLUSTER: PolicyDocument(scope=P.CLUSTER)})
        with pytest.raises(TypeError):
            doc.children[P.REGISTRY] = PolicyDocument(scope=P.REGISTRY)  # type: ignore[index]

    def test_role_template_children_read_only(self) -> None:
        """Templates are shared, so callers cannot rewrite their children."""
        [doc] = DEVELOPER_POLICY
        with pytest.raises(TypeError):
            doc.children[P.SETTINGS] = PolicyDocument(scope=P.SETTINGS)  # type: ignore[index]
        assert P.SETTINGS in doc.children
        assert doc.children[P.SETTINGS].verbs == frozenset({V.GET, V.LIST})

    def test_request_action_default_resource(self) -> None:
        assert RequestAction(verb=V.CREATE).resource.is_empty


class TestParsePolicy:
    """Tests for parse_policy."""

    def test_nested_policy(self) -> None:
        raw = json.dumps(
            [
                {
                    "scope": "project",
                    "verbs": ["get", "list", "create", "update", "delete"],
                    "children": {
                        "cluster": {
                            "scope": "cluster",
                            "verbs": ["get", "list"],
                            "resources": [{"uint": 500}],
                            "children": {
                                "namespace": {
                                    "scope": "namespace",
                                    "verbs": ["get"],
                                    "resources": [{"name": "abelanger"}],
                                }
                            },
                        }
                    },
                }
            ]
        )
        [doc] = parse_policy(raw)
        cluster = doc.children[P.CLUSTER]
        assert cluster.resources == (NameOrUInt(uint=500),)
        assert cluster.children[P.NAMESPACE].resources == (NameOrUInt(name="abelanger"),)
        assert cluster.children[P.NAMESPACE].verbs == {V.GET}

    def test_accepts_bytes(self) -> None:
        assert parse_policy(b'[{"scope": "project", "verbs": ["get"]}]') == [
            PolicyDocument(scope=P.PROJECT, verbs=frozenset({V.GET}))
        ]

    def test_omitted_verbs_are_empty(self) -> None:
        [doc] = parse_policy('[{"scope": "project"}]')
        assert doc.verbs == frozenset()

    def test_explicit_nulls(self) -> None:
        [doc] = parse_policy('[{"scope": "project", "verbs": null, "resources": null, "children": null}]')
        assert doc == PolicyDocument(scope=P.PROJECT)

    def test_empty_list(self) -> None:
        assert parse_policy("[]") == []

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            '{"scope": "project"}',
            "[1]",
            '["project"]',
        ],
    )
    def test_invalid_raises(self, raw: str) -> None:
        with pytest.raises(InvalidPolicyError) as exc_info:
            parse_policy(raw)
        assert exc_info.value.code == "INVALID_POLICY"
        assert exc_info.value.details["errors"]

    @pytest.mark.parametrize(
        "bad",
        [
            {"scope": "organization"},
            {"scope": "project", "verbs": ["patch"]},
            {"scope": "project", "resources": [{"name": "a", "uint": 1}]},
            {"verbs": ["get"]},
            {"scope": "project", "children": {"workspace": {"scope": "workspace"}}},
        ],
    )
    def test_invalid_document_dropped(self, bad: dict, caplog: pytest.LogCaptureFixture) -> None:
        """One undecodable document does not take the rest of the policy down."""
        raw = json.dumps([bad, {"scope": "project", "verbs": ["get"]}])
        with caplog.at_level("WARNING", logger="policycore.permissions.documents"):
            policy = parse_policy(raw)
        assert policy == [PolicyDocument(scope=P.PROJECT, verbs=frozenset({V.GET}))]
        assert "Dropping policy document 0" in caplog.text

    def test_all_documents_invalid(self) -> None:
        assert parse_policy('[{"scope": "galaxy"}, {"scope": "project", "verbs": ["patch"]}]') == []

    def test_structurally_invalid_still_decodes(self) -> None:
        """Hierarchy checks happen at evaluation time, not when decoding."""
        [doc] = parse_policy('[{"scope": "cluster", "children": {"project": {"scope": "project"}}}]')
        assert doc.scope is P.CLUSTER
        assert P.PROJECT in doc.children


class TestDumpPolicy:
    """Tests for dump_policy."""

    def test_verbs_in_canonical_order(self) -> None:
        data = json.loads(dump_policy(ADMIN_POLICY))
        assert data[0]["verbs"] == ["get", "list", "create", "update", "delete"]

    def test_wire_shape(self) -> None:
        data = json.loads(dump_policy(VIEWER_POLICY))
        settings = data[0]["children"]["settings"]
        assert data[0]["scope"] == "project"
        assert settings == {"scope": "settings", "resources": [], "verbs": [], "children": {}}

    def test_parse_inverts_dump(self) -> None:
        assert parse_policy(dump_policy(VIEWER_POLICY)) == list(VIEWER_POLICY)
