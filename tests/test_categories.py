from tasksync.categories import TAG_LABEL, CategoryIndex
from tasksync.notes import ROOT_NOTE_ID, AttributeSpec, NoteStore


def _tag_index():
    store = NoteStore()
    root = store.create_note(ROOT_NOTE_ID, "Tags")
    task = store.create_note(ROOT_NOTE_ID, "task")
    return store, CategoryIndex(store, root.note_id, TAG_LABEL), task


def _memberships(store, index, note_id):
    parents = set(store.get_parent_ids(note_id))
    return sorted(value for value, note in index.category_notes() if note.note_id in parents)


def test_resolve_or_create_returns_same_note_for_same_value():
    store, index, _ = _tag_index()

    first = index.resolve_or_create("work")
    second = index.resolve_or_create("work")

    assert first.note_id == second.note_id
    assert [value for value, _ in index.category_notes()] == ["work"]
    assert first.title == "work"
    assert store.get_label_value(first.note_id, TAG_LABEL) == "work"


def test_distinct_values_get_distinct_notes():
    _, index, _ = _tag_index()

    work = index.resolve_or_create("work")
    home = index.resolve_or_create("home")

    assert work.note_id != home.note_id


def test_reconcile_assignments_matches_assigned_set_exactly():
    store, index, task = _tag_index()
    index.reconcile_assignments(task.note_id, ["work", "urgent"], False)
    assert _memberships(store, index, task.note_id) == ["urgent", "work"]

    index.reconcile_assignments(task.note_id, ["home", "work"], False)

    assert _memberships(store, index, task.note_id) == ["home", "work"]
    assert sorted(value for value, _ in index.category_notes()) == [
        "home",
        "urgent",
        "work",
    ]


def test_reconcile_assignments_removes_everything_when_done():
    store, index, task = _tag_index()
    index.reconcile_assignments(task.note_id, ["work", "urgent"], False)

    index.reconcile_assignments(task.note_id, ["work", "urgent"], True)

    assert _memberships(store, index, task.note_id) == []


def test_done_task_does_not_create_categories():
    _, index, task = _tag_index()

    index.reconcile_assignments(task.note_id, ["new"], True)

    assert index.category_notes() == []


def test_unlabeled_children_are_left_alone():
    store, index, task = _tag_index()
    readme = store.create_note(index.root_note_id, "About tags")
    store.ensure_note_is_present_in_parent(task.note_id, readme.note_id)

    index.reconcile_assignments(task.note_id, [], False)

    assert readme.note_id in store.get_parent_ids(task.note_id)
    assert [value for value, _ in index.category_notes()] == []


def test_duplicate_category_notes_are_reconciled_together():
    store, index, task = _tag_index()
    first = index.create("work")
    second = store.create_note(
        index.root_note_id,
        "work",
        attributes=[AttributeSpec.label(TAG_LABEL, "work")],
    )

    index.reconcile_assignments(task.note_id, ["work"], False)
    parents = store.get_parent_ids(task.note_id)
    assert first.note_id in parents and second.note_id in parents

    index.reconcile_assignments(task.note_id, [], False)
    parents = store.get_parent_ids(task.note_id)
    assert first.note_id not in parents and second.note_id not in parents
