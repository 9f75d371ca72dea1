"""Shared fixtures for flowgraph tests."""

import pytest

from flowgraph import Column, ColumnType, FlowDesigner, GraphStore, TableNode


@pytest.fixture
def store():
    """An empty graph store."""
    return GraphStore()


@pytest.fixture
def designer(store):
    """A designer over the empty store."""
    return FlowDesigner(store)


@pytest.fixture
def events(store):
    """Every event the store delivers, in order."""
    received = []
    store.subscribe(received.append)
    return received


@pytest.fixture
def ab_designer(designer):
    """
    Two tables: A(id int PK) and B(a_id int, note text).

    Node ids equal the labels so references read naturally ("A.id").
    """
    designer.add_node(TableNode(
        id="A",
        label="A",
        columns=[Column(name="id", type=ColumnType.INT, is_primary_key=True)],
    ))
    designer.add_node(TableNode(
        id="B",
        label="B",
        columns=[
            Column(name="a_id", type=ColumnType.INT),
            Column(name="note", type=ColumnType.TEXT),
        ],
    ))
    return designer
