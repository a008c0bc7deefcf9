"""Tests for document mutations."""

from __future__ import annotations

import copy

import pytest

from lifeos.core.mutations import (
    EntityNotFoundError,
    add_attachment,
    add_resource,
    create_area,
    create_group,
    create_phase,
    create_project,
    create_task,
    delete_area,
    delete_group,
    delete_phase,
    delete_project,
    delete_task,
    move_project,
    move_task,
    toggle_task_status,
    update_area,
    update_group,
    update_phase,
    update_project,
    update_task,
)
from lifeos.core.queries import (
    INBOX,
    Location,
    find_area,
    find_phase,
    find_project,
    find_task,
    iter_task_lists,
    iter_tasks,
)
from lifeos.core.schema import initial_document, new_attachment, new_resource, normalize_document


def _task_ids(doc) -> list[str]:
    return [task["id"] for _, task in iter_tasks(doc)]


class TestScenarios:
    """End-to-end sequences of intents."""

    def test_buy_milk_toggle(self) -> None:
        doc = create_task(initial_document(), "Buy milk", INBOX, task_id="t1")
        assert doc["inbox"][0]["title"] == "Buy milk"
        assert doc["inbox"][0]["status"] == "Backlog"

        doc = toggle_task_status(doc, "t1")
        assert doc["inbox"][0]["status"] == "Done"
        doc = toggle_task_status(doc, "t1")
        assert doc["inbox"][0]["status"] == "In Progress"
        doc = toggle_task_status(doc, "t1")
        assert doc["inbox"][0]["status"] == "Done"

    def test_area_project_and_move(self) -> None:
        doc = create_area(initial_document(), "Side gigs", "rocket", area_id="a3")
        doc = create_project(doc, "Website", "a3", project_id="p1")
        doc = create_task(doc, "Pick domain", Location("project", "p1"), task_id="t1")

        doc = move_project(doc, "p1", "1")
        assert find_area(doc, "a3")["projects"] == []
        area, project = find_project(doc, "p1")
        assert area["id"] == "1"
        assert [t["id"] for t in project["tasks"]] == ["t1"]

    def test_delete_group_ungroups_areas(self) -> None:
        doc = create_group(initial_document(), "Life", group_id="g1")
        doc = update_area(doc, {**find_area(doc, "1"), "groupId": "g1"})
        doc = update_area(doc, {**find_area(doc, "2"), "groupId": "g1"})

        doc = delete_group(doc, "g1")
        assert doc["areaGroups"] == []
        assert all("groupId" not in area for area in doc["areas"])
        assert len(doc["areas"]) == 2


class TestGroups:
    def test_create_inserts_at_front(self) -> None:
        doc = create_group(initial_document(), "First", group_id="g1")
        doc = create_group(doc, "Second", group_id="g2")
        assert [g["id"] for g in doc["areaGroups"]] == ["g2", "g1"]

    def test_update(self) -> None:
        doc = create_group(initial_document(), "Old", group_id="g1")
        doc = update_group(doc, {"id": "g1", "title": "New"})
        assert doc["areaGroups"][0]["title"] == "New"

    def test_update_missing_is_noop(self) -> None:
        doc = initial_document()
        assert update_group(doc, {"id": "nope", "title": "x"}) is doc

    def test_delete_leaves_other_groups(self, sample_doc) -> None:
        doc = create_group(sample_doc, "Other", group_id="g2")
        doc = update_area(doc, {**find_area(doc, "a2"), "groupId": "g2"})
        doc = delete_group(doc, "g1")
        assert [g["id"] for g in doc["areaGroups"]] == ["g2"]
        assert "groupId" not in find_area(doc, "a1")
        assert find_area(doc, "a2")["groupId"] == "g2"


class TestAreas:
    def test_create_inserts_at_front(self) -> None:
        doc = create_area(initial_document(), "Finance", "coins", area_id="a3")
        assert doc["areas"][0]["id"] == "a3"
        assert doc["areas"][0]["tasks"] == []

    def test_create_with_group(self) -> None:
        doc = create_area(initial_document(), "Finance", "coins", "g1", area_id="a3")
        assert doc["areas"][0]["groupId"] == "g1"

    def test_delete_removes_contents(self, sample_doc) -> None:
        doc = delete_area(sample_doc, "a1")
        assert find_area(doc, "a1") is None
        assert find_project(doc, "p1") is None
        assert _task_ids(doc) == ["t-inbox"]

    def test_delete_missing_is_noop(self, sample_doc) -> None:
        assert delete_area(sample_doc, "zzz") is sample_doc


class TestProjects:
    def test_create_inserts_at_front(self, sample_doc) -> None:
        doc = create_project(sample_doc, "Second", "a1", project_id="p2")
        assert [p["id"] for p in find_area(doc, "a1")["projects"]] == ["p2", "p1"]

    def test_create_in_missing_area_raises(self, sample_doc) -> None:
        with pytest.raises(EntityNotFoundError):
            create_project(sample_doc, "Lost", "nope")

    def test_update(self, sample_doc) -> None:
        _, project = find_project(sample_doc, "p1")
        doc = update_project(sample_doc, {**project, "status": "Done"})
        assert find_project(doc, "p1")[1]["status"] == "Done"

    def test_delete_removes_tasks_and_phases(self, sample_doc) -> None:
        doc = delete_project(sample_doc, "p1")
        assert find_project(doc, "p1") is None
        assert find_phase(doc, "ph1") is None
        assert set(_task_ids(doc)) == {"t-inbox", "t-area"}

    def test_move_missing_project_is_noop(self, sample_doc) -> None:
        assert move_project(sample_doc, "nope", "a2") is sample_doc

    def test_move_to_missing_area_raises(self, sample_doc) -> None:
        with pytest.raises(EntityNotFoundError):
            move_project(sample_doc, "p1", "nope")
        assert find_project(sample_doc, "p1") is not None

    def test_move_inserts_at_front(self, sample_doc) -> None:
        doc = create_project(sample_doc, "Gym", "a2", project_id="p2")
        doc = move_project(doc, "p1", "a2")
        assert [p["id"] for p in find_area(doc, "a2")["projects"]] == ["p1", "p2"]


class TestPhases:
    def test_create_appends(self, sample_doc) -> None:
        doc = create_phase(sample_doc, "Build", "p1", phase_id="ph2")
        _, project = find_project(doc, "p1")
        assert [ph["id"] for ph in project["phases"]] == ["ph1", "ph2"]

    def test_create_in_missing_project_raises(self, sample_doc) -> None:
        with pytest.raises(EntityNotFoundError):
            create_phase(sample_doc, "Build", "nope")

    def test_update(self, sample_doc) -> None:
        _, phase = find_phase(sample_doc, "ph1")
        doc = update_phase(sample_doc, {**phase, "title": "Discovery"})
        assert find_phase(doc, "ph1")[1]["title"] == "Discovery"

    def test_delete_removes_tasks(self, sample_doc) -> None:
        doc = delete_phase(sample_doc, "ph1")
        assert find_phase(doc, "ph1") is None
        assert find_task(doc, "t-phase") is None


class TestTasks:
    @pytest.mark.parametrize(
        "location",
        [INBOX, Location("area", "a1"), Location("project", "p1"), Location("phase", "ph1")],
    )
    def test_create_at_front_of_each_container(self, sample_doc, location: Location) -> None:
        doc = create_task(sample_doc, "New", location, task_id="t-new")
        found_location, _ = find_task(doc, "t-new")
        assert found_location == location
        container = next(tasks for loc, tasks in iter_task_lists(doc) if loc.matches(location))
        assert container[0]["id"] == "t-new"

    def test_legacy_entities_without_ids(self) -> None:
        doc = normalize_document(
            {"inbox": [], "areas": [{"title": "Legacy", "projects": [{"title": "Old", "phases": [{}]}]}]}
        )
        doc = create_task(doc, "Buy milk", INBOX, task_id="t1")
        area = doc["areas"][0]
        doc = create_task(doc, "Plan", Location("area", area["id"]), task_id="t2")
        doc = move_task(doc, "t1", Location("phase", area["projects"][0]["phases"][0]["id"]))
        assert find_task(doc, "t1")[0].kind == "phase"
        assert [t["id"] for t in doc["areas"][0]["tasks"]] == ["t2"]

    def test_create_in_missing_container_raises(self, sample_doc) -> None:
        with pytest.raises(EntityNotFoundError):
            create_task(sample_doc, "Lost", Location("project", "nope"))

    def test_create_with_bad_kind_raises(self, sample_doc) -> None:
        with pytest.raises(ValueError):
            create_task(sample_doc, "Lost", Location("shelf", "x"))

    def test_update_anywhere(self, sample_doc) -> None:
        _, task = find_task(sample_doc, "t-phase")
        doc = update_task(sample_doc, {**task, "priority": "P1"})
        assert find_task(doc, "t-phase")[1]["priority"] == "P1"

    def test_delete_from_every_container(self, sample_doc) -> None:
        # A duplicated task (bad data) is removed from both places.
        doc = create_task(sample_doc, "Dup", INBOX, task_id="t-area")
        doc = delete_task(doc, "t-area")
        assert find_task(doc, "t-area") is None

    def test_move_between_containers(self, sample_doc) -> None:
        doc = move_task(sample_doc, "t-inbox", Location("phase", "ph1"))
        assert find_task(doc, "t-inbox")[0] == Location("phase", "ph1")
        assert doc["inbox"] == []
        assert _task_ids(doc).count("t-inbox") == 1

    def test_move_missing_task_is_noop(self, sample_doc) -> None:
        assert move_task(sample_doc, "nope", INBOX) is sample_doc

    def test_move_to_missing_container_keeps_task(self, sample_doc) -> None:
        with pytest.raises(EntityNotFoundError):
            move_task(sample_doc, "t-inbox", Location("area", "nope"))
        assert find_task(sample_doc, "t-inbox")[0] == INBOX

    def test_toggle_backlog_becomes_done(self, sample_doc) -> None:
        doc = toggle_task_status(sample_doc, "t-area")
        assert find_task(doc, "t-area")[1]["status"] == "Done"

    def test_toggle_missing_is_noop(self, sample_doc) -> None:
        assert toggle_task_status(sample_doc, "nope") is sample_doc


class TestAttachmentsAndResources:
    @pytest.mark.parametrize(("kind", "target_id"), [("task", "t-phase"), ("project", "p1"), ("phase", "ph1")])
    def test_add_attachment(self, sample_doc, kind: str, target_id: str) -> None:
        att = new_attachment("a.pdf", "https://files/a.pdf", attachment_id="att1")
        doc = add_attachment(sample_doc, kind, target_id, att)
        finder = {"task": find_task, "project": find_project, "phase": find_phase}[kind]
        assert finder(doc, target_id)[1]["attachments"][-1]["id"] == "att1"

    def test_attachment_to_task_in_any_container(self, sample_doc) -> None:
        att = new_attachment("a.pdf", "https://files/a.pdf", attachment_id="att1")
        doc = add_attachment(sample_doc, "task", "t-proj", att)
        assert find_task(doc, "t-proj")[1]["attachments"] == [att]

    def test_attachment_missing_target(self, sample_doc) -> None:
        with pytest.raises(EntityNotFoundError):
            add_attachment(sample_doc, "task", "nope", new_attachment("a", "u"))

    def test_attachment_bad_kind(self, sample_doc) -> None:
        with pytest.raises(ValueError, match="Invalid attachment target"):
            add_attachment(sample_doc, "area", "a1", new_attachment("a", "u"))

    @pytest.mark.parametrize(("kind", "target_id"), [("area", "a1"), ("project", "p1")])
    def test_add_resource_at_front(self, sample_doc, kind: str, target_id: str) -> None:
        doc = add_resource(sample_doc, kind, target_id, new_resource("Old", resource_id="r1"))
        doc = add_resource(doc, kind, target_id, new_resource("New", resource_id="r2"))
        entity = find_area(doc, target_id) if kind == "area" else find_project(doc, target_id)[1]
        assert [r["id"] for r in entity["resources"]] == ["r2", "r1"]

    def test_resource_bad_kind(self, sample_doc) -> None:
        with pytest.raises(ValueError, match="Invalid resource target"):
            add_resource(sample_doc, "task", "t-inbox", new_resource("x"))


class TestStructuralSharing:
    """Mutations never touch their input and reuse untouched branches."""

    def test_input_not_mutated(self, sample_doc) -> None:
        snapshot = copy.deepcopy(sample_doc)
        doc = create_task(sample_doc, "x", Location("phase", "ph1"))
        doc = toggle_task_status(doc, "t-proj")
        doc = move_task(doc, "t-inbox", Location("area", "a2"))
        doc = delete_project(doc, "p1")
        delete_group(doc, "g1")
        assert sample_doc == snapshot

    def test_untouched_areas_shared(self, sample_doc) -> None:
        doc = create_task(sample_doc, "x", Location("area", "a2"))
        assert doc["areas"][0] is sample_doc["areas"][0]
        assert doc["inbox"] is sample_doc["inbox"]
        assert doc["areas"][1] is not sample_doc["areas"][1]
