from __future__ import annotations

import threading

import pytest

from review_engine.recommendations.data_store import NotFoundError
from review_engine.tags.service import (
    assign_tags_to_collection,
    assign_tags_to_subject,
    create_tag,
    format_tag_names,
    list_tags,
    list_tags_of_collection,
    list_tags_of_subject,
)


def test_create_and_list_by_scope(store):
    create_tag("spicy lover", "subject", store=store)
    create_tag("hotpot", "collection", store=store)
    assert [t.name for t in list_tags("subject", store=store)] == ["spicy lover"]
    assert len(list_tags(store=store)) == 2


def test_assign_replaces_previous_set(store):
    a = create_tag("a", "subject", store=store)
    b = create_tag("b", "subject", store=store)
    c = create_tag("c", "subject", store=store)

    assign_tags_to_subject(1, [a.id, b.id], store=store)
    assign_tags_to_subject(1, [c.id], store=store)

    assert [t.name for t in list_tags_of_subject(1, store=store)] == ["c"]


def test_assign_empty_list_clears_bindings(store):
    a = create_tag("a", "subject", store=store)
    assign_tags_to_subject(1, [a.id], store=store)

    bindings = assign_tags_to_subject(1, [], store=store)

    assert bindings == []
    assert store.bindings_of("subject", 1) == []
    assert list_tags_of_subject(1, store=store) == []


def test_assign_collapses_duplicate_ids(store):
    a = create_tag("a", "collection", store=store)
    bindings = assign_tags_to_collection(10, [a.id, a.id, a.id], store=store)
    assert len(bindings) == 1
    assert bindings[0].weight == 1.0
    assert [t.name for t in list_tags_of_collection(10, store=store)] == ["a"]


def test_assign_does_not_touch_other_owners(store):
    a = create_tag("a", "subject", store=store)
    assign_tags_to_subject(1, [a.id], store=store)
    assign_tags_to_subject(2, [], store=store)
    assert [t.name for t in list_tags_of_subject(1, store=store)] == ["a"]


def test_assign_unknown_subject_raises(store):
    with pytest.raises(NotFoundError):
        assign_tags_to_subject(999, [], store=store)


def test_assign_unknown_collection_raises(store):
    with pytest.raises(NotFoundError):
        assign_tags_to_collection(999, [], store=store)


def test_assign_unknown_tag_keeps_previous_set(store):
    a = create_tag("a", "subject", store=store)
    assign_tags_to_subject(1, [a.id], store=store)
    with pytest.raises(NotFoundError):
        assign_tags_to_subject(1, [a.id, 12345], store=store)
    assert [t.name for t in list_tags_of_subject(1, store=store)] == ["a"]


def test_concurrent_assigns_leave_one_complete_set(store):
    tags = [create_tag(f"t{i}", "subject", store=store) for i in range(4)]
    sets = [[tags[0].id, tags[1].id], [tags[2].id, tags[3].id]]

    threads = [
        threading.Thread(target=assign_tags_to_subject, args=(1, ids), kwargs={"store": store})
        for ids in sets * 10
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    final = sorted(b.tag_id for b in store.bindings_of("subject", 1))
    assert final in [sorted(s) for s in sets]


def test_format_tag_names_skips_blanks():
    assert format_tag_names(["spicy lover", "", "  ", "night owl"]) == "spicy lover, night owl"
    assert format_tag_names([]) == ""
