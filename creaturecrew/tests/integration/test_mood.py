"""
tests/integration/test_mood.py — Creature mood as seen through the API and
through mood_service.recompute() against a real session.
"""

from __future__ import annotations

import pytest

from creaturecrew.app.extensions import db
from creaturecrew.app.models.group import Group
from creaturecrew.app.services import mood_service

from .conftest import add_tasks, auth_headers, join, make_group, register, toggle


def _group_mood(client, token: str, group_id: int) -> int:
    resp = client.get(f"/api/v1/groups/{group_id}", headers=auth_headers(token))
    return resp.get_json()["data"]["creature_mood"]


class TestFitnessFriends:

    def test_one_of_four_done_gives_25_and_outsider_cannot_toggle(self, client):
        founder  = register(client, "alice")
        outsider = register(client, "bob")
        group = make_group(client, founder["access_token"], "Fitness Friends")

        created = add_tasks(
            client,
            founder["access_token"],
            group["id"],
            ["Run 5k", "Do 20 push-ups", "Stretch", "Drink 2L water"],
        ).get_json()["data"]["tasks"]

        resp = toggle(client, founder["access_token"], created[0]["id"])
        assert resp.get_json()["data"]["creature_mood"] == 25
        assert _group_mood(client, founder["access_token"], group["id"]) == 25

        refused = toggle(client, outsider["access_token"], created[1]["id"])
        assert refused.status_code == 403
        assert refused.get_json()["error"]["code"] == "FORBIDDEN"
        assert _group_mood(client, founder["access_token"], group["id"]) == 25


class TestMoodRatio:

    @pytest.mark.parametrize("total, done, expected", [
        (3, 1, 33),
        (3, 2, 67),
        (5, 5, 100),
        (8, 3, 38),
        (8, 1, 13),
    ])
    def test_mood_tracks_completion_ratio(self, client, total, done, expected):
        founder = register(client, "alice")
        group = make_group(client, founder["access_token"])
        tasks = add_tasks(
            client,
            founder["access_token"],
            group["id"],
            [f"Task {i}" for i in range(total)],
        ).get_json()["data"]["tasks"]

        for task in tasks[:done]:
            toggle(client, founder["access_token"], task["id"])

        assert _group_mood(client, founder["access_token"], group["id"]) == expected

    def test_tasks_from_all_members_count(self, client):
        alice = register(client, "alice")
        bob   = register(client, "bob")
        group = make_group(client, alice["access_token"])
        join(client, bob["access_token"], group["invite_code"])

        a_task = add_tasks(client, alice["access_token"], group["id"], ["A"]).get_json()["data"]["tasks"][0]
        b_task = add_tasks(client, bob["access_token"], group["id"], ["B"]).get_json()["data"]["tasks"][0]

        assert toggle(client, alice["access_token"], a_task["id"]).get_json()["data"]["creature_mood"] == 50
        assert toggle(client, bob["access_token"], b_task["id"]).get_json()["data"]["creature_mood"] == 100

    def test_new_group_is_neutral(self, client):
        founder = register(client, "alice")
        group = make_group(client, founder["access_token"])
        assert _group_mood(client, founder["access_token"], group["id"]) == 50

    def test_empty_bulk_create_leaves_mood_alone(self, client):
        founder = register(client, "alice")
        group = make_group(client, founder["access_token"])
        add_tasks(client, founder["access_token"], group["id"], [])
        assert _group_mood(client, founder["access_token"], group["id"]) == 50


class TestRecompute:

    def test_zero_tasks_is_neutral_and_idempotent(self, app, client):
        founder = register(client, "alice")
        group = make_group(client, founder["access_token"])

        with app.app_context():
            first = mood_service.recompute(group["id"], db.session)
            second = mood_service.recompute(group["id"], db.session)
            db.session.commit()

        assert first == second == 50

    def test_recompute_repairs_a_stale_cache(self, app, client):
        founder = register(client, "alice")
        group = make_group(client, founder["access_token"])
        task = add_tasks(client, founder["access_token"], group["id"], ["Only task"]).get_json()["data"]["tasks"][0]
        toggle(client, founder["access_token"], task["id"])

        with app.app_context():
            db.session.get(Group, group["id"]).creature_mood = 3
            db.session.commit()

            assert mood_service.recompute(group["id"], db.session) == 100
            db.session.commit()

        assert _group_mood(client, founder["access_token"], group["id"]) == 100
