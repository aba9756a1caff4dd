"""
tests/integration/test_membership.py — Joining by invite code and listing members.

Endpoints:
  POST /groups/join         → 201
  GET  /groups/:id/members  → 200 (members only)
"""

from __future__ import annotations

import pytest

from .conftest import auth_headers, join, make_group, register


class TestJoin:

    def test_join_with_valid_code(self, client):
        founder = register(client, "alice")
        member  = register(client, "bob")
        group   = make_group(client, founder["access_token"])

        resp = join(client, member["access_token"], group["invite_code"])
        assert resp.status_code == 201
        assert resp.get_json()["data"]["id"] == group["id"]

    def test_code_is_case_and_whitespace_insensitive(self, client):
        founder = register(client, "alice")
        member  = register(client, "bob")
        group   = make_group(client, founder["access_token"])

        resp = join(client, member["access_token"], f"  {group['invite_code'].lower()} ")
        assert resp.status_code == 201

    def test_heavily_padded_code_still_joins(self, client):
        founder = register(client, "alice")
        member  = register(client, "bob")
        group   = make_group(client, founder["access_token"])

        padded = " " * 20 + group["invite_code"].lower() + " " * 20
        resp = join(client, member["access_token"], padded)
        assert resp.status_code == 201
        assert resp.get_json()["data"]["id"] == group["id"]

    def test_unknown_code_returns_404(self, client):
        user = register(client, "alice")
        resp = join(client, user["access_token"], "ZZZZZZ")
        assert resp.status_code == 404
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_INVITE_CODE"
        assert error["field"] == "code"

    @pytest.mark.parametrize("code", [
        "zzZzzz",
        "  zzZzzz  ",
        " " * 20 + "zzzzzz" + " " * 20,
    ])
    def test_unknown_code_in_any_case_or_padding_returns_404(self, client, code):
        founder = register(client, "alice")
        make_group(client, founder["access_token"])
        user = register(client, "bob")

        resp = join(client, user["access_token"], code)
        assert resp.status_code == 404
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_INVITE_CODE"
        assert error["field"] == "code"

    def test_blank_code_returns_400(self, client):
        user = register(client, "alice")
        resp = join(client, user["access_token"], "   ")
        assert resp.status_code == 400

    def test_joining_second_group_returns_409(self, client):
        alice = register(client, "alice")
        bob   = register(client, "bob")
        carol = register(client, "carol")
        first  = make_group(client, alice["access_token"], "First")
        second = make_group(client, bob["access_token"], "Second")

        assert join(client, carol["access_token"], first["invite_code"]).status_code == 201
        resp = join(client, carol["access_token"], second["invite_code"])
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "ALREADY_IN_GROUP"

        me = client.get("/api/v1/groups/me", headers=auth_headers(carol["access_token"]))
        assert me.get_json()["data"]["id"] == first["id"]

    def test_rejoining_same_group_returns_409(self, client):
        founder = register(client, "alice")
        member  = register(client, "bob")
        group   = make_group(client, founder["access_token"])

        join(client, member["access_token"], group["invite_code"])
        resp = join(client, member["access_token"], group["invite_code"])
        assert resp.status_code == 409

    def test_founder_cannot_join_own_group_again(self, client):
        founder = register(client, "alice")
        group   = make_group(client, founder["access_token"])
        resp = join(client, founder["access_token"], group["invite_code"])
        assert resp.status_code == 409


class TestListMembers:

    def test_members_listed_in_join_order(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])
        for name in ("bob", "carol"):
            user = register(client, name)
            join(client, user["access_token"], group["invite_code"])

        resp = client.get(
            f"/api/v1/groups/{group['id']}/members",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        members = resp.get_json()["data"]
        assert [m["username"] for m in members] == ["alice", "bob", "carol"]
        assert all("joined_at" in m for m in members)

    def test_non_member_cannot_list(self, client):
        alice    = register(client, "alice")
        outsider = register(client, "mallory")
        group = make_group(client, alice["access_token"])

        resp = client.get(
            f"/api/v1/groups/{group['id']}/members",
            headers=auth_headers(outsider["access_token"]),
        )
        assert resp.status_code == 403
