from plugins.versioned_docs.tree import TreeObject, docs_under, index_tree, markdown_objects


class TestIndexTree:
    def test_parses_mode_and_path(self):
        objects = index_tree("100644 blob abcd\tdocs/intro.md")
        assert objects == [TreeObject(mode="100644", path="docs/intro.md")]

    def test_multiple_lines_keep_order(self):
        raw = (
            "100644 blob 1111\tREADME.md\n"
            "120000 blob 2222\tdocs/source/link.md\n"
            "100644 blob 3333\tdocs/source/with space.md"
        )
        objects = index_tree(raw)
        assert [o.path for o in objects] == [
            "README.md",
            "docs/source/link.md",
            "docs/source/with space.md",
        ]
        assert [o.is_symlink for o in objects] == [False, True, False]

    def test_empty_input_gives_degenerate_record(self):
        """Callers guard against empty listings; indexing one yields an empty path."""
        assert index_tree("") == [TreeObject(mode="", path="")]


def test_markdown_and_docs_filters():
    objects = index_tree(
        "100644 blob 1\tdocs/a.md\n"
        "100644 blob 2\tdocs/b.mdx\n"
        "100644 blob 3\tdocs/c.txt\n"
        "100644 blob 4\tREADME.md"
    )
    assert [o.path for o in markdown_objects(objects)] == ["docs/a.md", "docs/b.mdx", "README.md"]
    assert [o.path for o in docs_under(objects, "docs")] == ["docs/a.md", "docs/b.mdx"]
