"""
Tests for Hierarchy.refresh against a real SQLite store.
"""

import logging

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, insert, select

from hierarchylib import (
    CollectOrphansPolicy,
    FailOnOrphansPolicy,
    Hierarchy,
    HierarchyConfig,
    NestedSetValues,
    StructureError,
)
from hierarchylib.testing import find_numbering_violations


EXPECTED = {
    1: (0, 1, 30), 2: (1, 2, 9), 3: (2, 3, 4), 4: (2, 5, 6), 5: (2, 7, 8),
    6: (1, 10, 19), 7: (2, 11, 14), 8: (3, 12, 13), 9: (2, 15, 16), 10: (2, 17, 18),
    11: (1, 20, 29), 12: (2, 21, 22), 13: (2, 23, 28), 14: (3, 24, 25), 15: (3, 26, 27),
}


def add_category(engine, tables, node_id, name, parent):
    with engine.begin() as conn:
        conn.execute(insert(tables["category"]), [{"id": node_id, "name": name, "parent": parent}])


class TestRefresh:
    """Numbering the Electronics table."""

    def test_writes_expected_values(self, engine, tables, category_rows):
        """Every row gets the documented level/lft/rgt."""
        result = Hierarchy(engine, "category").refresh()

        assert result.updated == 15
        assert result.orphans == ()
        stored = {row["id"]: (row["level"], row["lft"], row["rgt"]) for row in category_rows()}
        assert stored == EXPECTED

    def test_result_numbering_matches_store(self, engine, tables, category_rows):
        """RefreshResult.numbering holds what was written, in id order."""
        result = Hierarchy(engine, "category").refresh()

        assert list(result.numbering) == list(range(1, 16))
        assert result.numbering[8] == NestedSetValues(3, 12, 13)
        assert find_numbering_violations(category_rows()) == []

    def test_refresh_is_idempotent(self, hier, category_rows):
        """A second refresh without changes writes the same values."""
        before = category_rows()
        hier.refresh()
        assert category_rows() == before

    def test_order_column_controls_siblings(self, engine, tables, category_rows):
        """Siblings are numbered in the order of the given column."""
        result = Hierarchy(engine, "category").refresh(order="name")

        # Apple in California < Portable Electronics < Televisions
        assert result.numbering[11] == NestedSetValues(1, 2, 11)
        assert result.numbering[13] == NestedSetValues(2, 3, 8)
        assert result.numbering[12] == NestedSetValues(2, 9, 10)
        assert result.numbering[6].lft == 12
        assert result.numbering[2].rgt == 29
        assert find_numbering_violations(category_rows()) == []

    def test_unknown_order_column(self, engine, tables):
        """Ordering by a missing column is rejected before any query runs."""
        with pytest.raises(ValueError, match="Unknown column"):
            Hierarchy(engine, "category").refresh(order="nope")

    def test_refresh_after_insert(self, hier, engine, tables, category_rows):
        """New rows are picked up and everything after them shifts by two."""
        add_category(engine, tables, 16, "Walkman", 9)

        result = hier.refresh()

        assert result.updated == 16
        assert result.numbering[16] == NestedSetValues(3, 16, 17)
        assert result.numbering[9] == NestedSetValues(2, 15, 18)
        assert result.numbering[10] == NestedSetValues(2, 19, 20)
        assert result.numbering[1] == NestedSetValues(0, 1, 32)
        assert find_numbering_violations(category_rows()) == []

    def test_refresh_after_reparent(self, hier, engine, tables, category_rows):
        """Moving a subtree is just a parent update followed by refresh."""
        category = tables["category"]
        with engine.begin() as conn:
            conn.execute(category.update().where(category.c.id == 7).values(parent=2))

        result = hier.refresh()

        assert result.numbering[7].level == 2
        assert result.numbering[8].level == 3
        assert result.numbering[2].contains(result.numbering[8])
        assert not result.numbering[6].contains(result.numbering[8])
        assert find_numbering_violations(category_rows()) == []

    def test_empty_table(self, engine):
        """Refreshing an empty table writes nothing."""
        from hierarchylib.testing import create_category_tables

        create_category_tables(engine)
        result = Hierarchy(engine, "category").refresh()

        assert result.updated == 0
        assert result.numbering == {}

    def test_logs_summary(self, engine, tables, caplog):
        """Refresh reports what it numbered at INFO level."""
        caplog.set_level(logging.INFO, logger="hierarchylib")
        Hierarchy(engine, "category").refresh()
        assert "15 node(s) numbered" in caplog.text


class TestOrphans:
    """Rows that cannot be reached from the root."""

    @pytest.fixture
    def with_orphans(self, engine, tables):
        add_category(engine, tables, 16, "Lost", 99)
        add_category(engine, tables, 17, "Lost child", 16)
        return tables

    def test_ignored_by_default(self, engine, with_orphans, category_rows):
        """Orphans are skipped and keep their old values."""
        result = Hierarchy(engine, "category").refresh()

        assert result.orphans == (16, 17)
        assert result.updated == 15
        rows = {row["id"]: row for row in category_rows()}
        assert (rows[16]["lft"], rows[16]["rgt"]) == (0, 0)
        assert (rows[1]["lft"], rows[1]["rgt"]) == (1, 30)

    def test_collect_policy(self, engine, with_orphans, caplog):
        """CollectOrphansPolicy records orphans and logs a warning."""
        policy = CollectOrphansPolicy()
        hier = Hierarchy(engine, "category", orphan_policy=policy)

        with caplog.at_level(logging.WARNING, logger="hierarchylib"):
            hier.refresh()
            hier.refresh()

        assert policy.orphans == [16, 17, 16, 17]
        stats = policy.get_statistics()
        assert stats["refreshes_with_orphans"] == 2
        assert stats["total_orphans"] == 4
        assert stats["records"][0]["table"] == "category"
        assert "unreachable" in caplog.text

        policy.clear()
        assert policy.orphans == []

    def test_collect_policy_quiet(self, engine, with_orphans, caplog):
        """verbose=False records without logging."""
        policy = CollectOrphansPolicy(verbose=False)
        with caplog.at_level(logging.WARNING, logger="hierarchylib"):
            Hierarchy(engine, "category", orphan_policy=policy).refresh()
        assert policy.orphans == [16, 17]
        assert "unreachable" not in caplog.text

    def test_fail_policy_aborts_before_writing(self, engine, with_orphans, category_rows):
        """FailOnOrphansPolicy raises and leaves the table untouched."""
        hier = Hierarchy(engine, "category", orphan_policy=FailOnOrphansPolicy())

        with pytest.raises(StructureError) as excinfo:
            hier.refresh()

        assert excinfo.value.orphans == (16, 17)
        assert "2 node(s) unreachable" in str(excinfo.value)
        assert all(row["lft"] == 0 for row in category_rows())

    def test_cycle(self, engine, tables):
        """Rows on a parent cycle are orphans too."""
        add_category(engine, tables, 16, "A", 17)
        add_category(engine, tables, 17, "B", 16)

        result = Hierarchy(engine, "category").refresh()

        assert result.orphans == (16, 17)
        assert 16 not in result.numbering


class TestCustomColumns:
    """Tables that do not use the default column names."""

    @pytest.fixture
    def folders(self, engine):
        metadata = MetaData()
        table = Table(
            "folders", metadata,
            Column("folder_id", Integer, primary_key=True),
            Column("title", String(50)),
            Column("up", Integer),
            Column("lvl", Integer, default=0),
            Column("lo", Integer, default=0),
            Column("hi", Integer, default=0),
        )
        metadata.create_all(engine)
        with engine.begin() as conn:
            conn.execute(insert(table), [
                {"folder_id": 10, "title": "root", "up": -1},
                {"folder_id": 20, "title": "docs", "up": 10},
                {"folder_id": 30, "title": "src", "up": 10},
                {"folder_id": 40, "title": "api", "up": 20},
            ])
        return table

    def test_configured_columns(self, engine, folders):
        """Every bookkeeping column and the root marker are configurable."""
        config = HierarchyConfig(
            table="folders", id_column="folder_id", parent_column="up",
            level_column="lvl", lft_column="lo", rgt_column="hi", root_value=-1,
        )
        hier = Hierarchy(engine, config=config)

        hier.refresh()

        with engine.connect() as conn:
            rows = conn.execute(
                select(folders.c.folder_id, folders.c.lvl, folders.c.lo, folders.c.hi)
                .order_by(folders.c.folder_id)
            ).all()
        assert [tuple(row) for row in rows] == [
            (10, 0, 1, 8), (20, 1, 2, 5), (30, 1, 6, 7), (40, 2, 3, 4),
        ]
        assert hier.path("title", "api") == {10: "root", 20: "docs", 40: "api"}
        assert hier.tree("title") == {
            10: {"title": "root", "parent": -1, "depth": 0},
            20: {"title": "docs", "parent": 10, "depth": 1},
            40: {"title": "api", "parent": 20, "depth": 2},
            30: {"title": "src", "parent": 10, "depth": 1},
        }
