import pytest

from tasksync.bootstrap import init_task_tree
from tasksync.calendar_notes import get_date_note
from tasksync.categories import LOCATION_LABEL, TAG_LABEL, CategoryIndex
from tasksync.errors import TaskSyncError
from tasksync.notes import ROOT_NOTE_ID, AttributeSpec, NoteStore
from tasksync.reconcile import (
    DONE_ROLE,
    TODO_ROLE,
    TODO_ROOT_LABEL,
    ReconciliationEngine,
    TaskRoots,
    TaskService,
)


def _seeded_store():
    store = NoteStore()
    ids = init_task_tree(store)
    return store, ids


def _create_task(store, ids, *labels):
    return store.create_note(
        ids["todoRoot"],
        "task",
        attributes=[AttributeSpec.relation("template", ids["taskTemplate"])]
        + [AttributeSpec.label(name, value) for name, value in labels],
    )


def _category_titles(store, root_id, note_id):
    return sorted(
        store.get_note(parent_id).title
        for parent_id in store.get_parent_ids(note_id)
        if root_id in store.get_parent_ids(parent_id)
    )


def _css_classes(store, note_id):
    return sorted(store.get_label_values(note_id, "cssClass"))


def test_done_task_is_filed_by_done_date_and_untagged():
    store, ids = _seeded_store()
    task = _create_task(store, ids, ("tag", "work"), ("tag", "urgent"))
    service = TaskService(store)
    service.sync_task(task.note_id)
    assert _category_titles(store, ids["tagRoot"], task.note_id) == ["urgent", "work"]

    store.set_attribute(task.note_id, "label", "doneDate", "2024-03-01")
    state = service.on_attribute_changed(task.note_id, "doneDate")

    assert state.is_done and not state.is_todo
    parents = store.get_parent_ids(task.note_id)
    assert ids["doneRoot"] in parents
    assert ids["todoRoot"] not in parents
    assert ids["canceledRoot"] not in parents
    assert _category_titles(store, ids["tagRoot"], task.note_id) == []
    assert _css_classes(store, task.note_id) == ["done"]
    day = get_date_note(store, "2024-03-01")
    assert store.get_role_parent_id(task.note_id, DONE_ROLE) == day.note_id
    assert store.get_role_parent_id(task.note_id, TODO_ROLE) is None


def test_todo_task_creates_location_category_and_date_placement():
    store, ids = _seeded_store()
    task = _create_task(store, ids, ("todoDate", "2024-03-10"), ("location", "Paris"))

    TaskService(store).sync_task(task.note_id)

    parents = store.get_parent_ids(task.note_id)
    assert ids["todoRoot"] in parents
    assert ids["doneRoot"] not in parents
    paris = CategoryIndex(store, ids["locationRoot"], LOCATION_LABEL).find("Paris")
    assert paris is not None
    assert paris.note_id in parents
    assert _css_classes(store, task.note_id) == ["todo"]
    day = get_date_note(store, "2024-03-10")
    assert store.get_role_parent_id(task.note_id, TODO_ROLE) == day.note_id


def test_canceled_wins_over_done():
    store, ids = _seeded_store()
    task = _create_task(
        store, ids, ("canceled", "true"), ("doneDate", "2024-03-01"), ("todoDate", "2024-03-02")
    )

    state = TaskService(store).sync_task(task.note_id)

    assert state.is_canceled and state.is_done and not state.is_todo
    parents = store.get_parent_ids(task.note_id)
    assert ids["canceledRoot"] in parents
    assert ids["doneRoot"] not in parents
    assert ids["todoRoot"] not in parents
    assert _css_classes(store, task.note_id) == ["done"]
    assert store.get_role_parent_id(task.note_id, DONE_ROLE) is None
    assert store.get_role_parent_id(task.note_id, TODO_ROLE) is None


def test_reminders_are_never_reconciled():
    store, ids = _seeded_store()
    reminder = store.create_note(
        ROOT_NOTE_ID,
        "call mom",
        attributes=[
            AttributeSpec.relation("template", ids["reminderTemplate"]),
            AttributeSpec.label("todoDate", "2024-03-10"),
            AttributeSpec.label("tag", "family"),
        ],
    )
    store.dirty = False
    service = TaskService(store)

    assert service.sync_task(reminder.note_id) is None
    assert service.on_attribute_changed(reminder.note_id, "tag") is None
    assert store.dirty is False
    assert store.get_parent_ids(reminder.note_id) == [ROOT_NOTE_ID]


def test_reconcile_is_idempotent():
    store, ids = _seeded_store()
    task = _create_task(
        store, ids, ("todoDate", "2024-03-10"), ("location", "Paris"), ("tag", "work")
    )
    service = TaskService(store)
    service.sync_task(task.note_id)
    snapshot = store.to_dict()
    store.dirty = False

    service.sync_task(task.note_id)

    assert store.dirty is False
    assert store.to_dict() == snapshot


def test_changing_done_date_swaps_date_parent():
    store, ids = _seeded_store()
    task = _create_task(store, ids, ("doneDate", "2024-03-01"))
    service = TaskService(store)
    service.sync_task(task.note_id)
    first_day = get_date_note(store, "2024-03-01")

    store.set_attribute(task.note_id, "label", "doneDate", "2024-03-05")
    service.on_attribute_changed(task.note_id, "doneDate")

    second_day = get_date_note(store, "2024-03-05")
    parents = store.get_parent_ids(task.note_id)
    assert second_day.note_id in parents
    assert first_day.note_id not in parents
    done_links = [
        branch for branch in store.get_branches(task.note_id) if branch.prefix == DONE_ROLE
    ]
    assert len(done_links) == 1


def test_reopening_task_restores_todo_filing_and_tags():
    store, ids = _seeded_store()
    task = _create_task(store, ids, ("doneDate", "2024-03-01"), ("tag", "work"))
    service = TaskService(store)
    service.sync_task(task.note_id)
    assert _category_titles(store, ids["tagRoot"], task.note_id) == []

    store.remove_attributes(task.note_id, "label", "doneDate")
    service.on_attribute_changed(task.note_id, "doneDate")

    parents = store.get_parent_ids(task.note_id)
    assert ids["todoRoot"] in parents
    assert ids["doneRoot"] not in parents
    assert store.get_role_parent_id(task.note_id, DONE_ROLE) is None
    assert _category_titles(store, ids["tagRoot"], task.note_id) == ["work"]
    assert _css_classes(store, task.note_id) == ["todo"]


def test_unrelated_attribute_change_does_not_trigger():
    store, ids = _seeded_store()
    task = _create_task(store, ids, ("todoDate", "2024-03-10"))
    store.dirty = False

    assert TaskService(store).on_attribute_changed(task.note_id, "priority") is None
    assert store.dirty is False
    assert store.get_role_parent_id(task.note_id, TODO_ROLE) is None


def test_missing_root_aborts_before_any_change():
    store, ids = _seeded_store()
    task = _create_task(store, ids, ("tag", "work"))
    store.remove_attributes(ids["tagRoot"], "label", "taskTagRoot")
    store.dirty = False

    with pytest.raises(TaskSyncError) as excinfo:
        TaskService(store).sync_task(task.note_id)

    assert excinfo.value.code == "ROOT_NOT_FOUND"
    assert store.dirty is False


def test_duplicate_root_is_a_configuration_error():
    store, ids = _seeded_store()
    store.create_note(
        ROOT_NOTE_ID, "Todo 2", attributes=[AttributeSpec.label(TODO_ROOT_LABEL)]
    )

    with pytest.raises(TaskSyncError) as excinfo:
        TaskRoots.lookup(store)

    assert excinfo.value.code == "AMBIGUOUS_ROOT"


def test_refresh_observer_is_called_after_reconcile():
    store, ids = _seeded_store()
    task = _create_task(store, ids)
    refreshed = []

    engine = ReconciliationEngine(
        store, TaskRoots.lookup(store), on_refresh=refreshed.append
    )
    engine.reconcile(task.note_id)

    assert refreshed == [task.note_id]


def test_tag_categories_are_shared_between_tasks():
    store, ids = _seeded_store()
    first = _create_task(store, ids, ("tag", "work"))
    second = _create_task(store, ids, ("tag", "work"), ("tag", "home"))
    service = TaskService(store)

    service.sync_task(first.note_id)
    service.sync_task(second.note_id)

    index = CategoryIndex(store, ids["tagRoot"], TAG_LABEL)
    values = [value for value, _ in index.category_notes()]
    assert sorted(values) == ["home", "work"]
    work = index.find("work")
    children = {child.note_id for child in store.get_child_notes(work.note_id)}
    assert children == {first.note_id, second.note_id}


def test_syncing_a_container_never_files_it_under_itself():
    store, ids = _seeded_store()
    tasks_root = store.get_parent_ids(ids["todoRoot"])[0]
    store.dirty = False
    service = TaskService(store)

    for note_id in (ids["todoRoot"], tasks_root):
        with pytest.raises(TaskSyncError) as excinfo:
            service.sync_task(note_id)
        assert excinfo.value.code == "INVALID_PARENT"

    assert store.get_parent_ids(ids["todoRoot"]) == [tasks_root]
    assert store.get_parent_ids(tasks_root) == [ROOT_NOTE_ID]
    assert store.dirty is False
