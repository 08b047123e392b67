"""
Tests for the structured blog document model.
"""

import pytest

from portfolio.content.document import (
    Document,
    Embed,
    Heading,
    Image,
    Link,
    ListBlock,
    Paragraph,
    Table,
    paragraph,
    table_placeholder,
)


class TestBlocks:
    """Tests for rendering individual blocks."""

    def test_paragraph_escapes_text_and_opens_links_in_new_tab(self):
        block = paragraph("Read <this> & ", Link("the docs", "https://example.com/?a=1&b=2"))
        assert block.to_html() == (
            "<p>Read &lt;this&gt; &amp; "
            '<a href="https://example.com/?a=1&amp;b=2" target="_blank" rel="noopener noreferrer">the docs</a></p>'
        )
        assert block.text() == "Read <this> & the docs"

    def test_heading_levels(self):
        assert Heading("Setup", level=3).to_html() == "<h3>Setup</h3>"
        with pytest.raises(ValueError):
            Heading("Too deep", level=7)

    def test_lists(self):
        assert ListBlock(["a", "b"]).to_html() == "<ul><li>a</li><li>b</li></ul>"
        assert ListBlock(["a"], ordered=True).to_html() == "<ol><li>a</li></ol>"

    def test_image_and_embed_have_no_text(self):
        assert Image("https://example.com/a.png", alt="A \"quote\"").to_html() == (
            '<img src="https://example.com/a.png" alt="A &quot;quote&quot;" />'
        )
        assert Embed("https://www.youtube.com/embed/xyz").text() == ""
        assert "<iframe" in Embed("https://www.youtube.com/embed/xyz").to_html()


class TestTablePlaceholder:
    """Tests for the table insertion helper."""

    def test_cells_are_numbered_from_one(self):
        table = table_placeholder(2, 3)
        assert table.rows == (
            ("Cell 1-1", "Cell 1-2", "Cell 1-3"),
            ("Cell 2-1", "Cell 2-2", "Cell 2-3"),
        )

    @pytest.mark.parametrize("rows,cols", [(0, 3), (2, 0), (-1, 1)])
    def test_empty_dimensions_are_rejected(self, rows, cols):
        with pytest.raises(ValueError):
            table_placeholder(rows, cols)


class TestDocument:
    """Tests for document editing commands."""

    def make_document(self):
        return Document([
            Heading("Intro", level=2),
            paragraph("First paragraph."),
            ListBlock(["one", "two"]),
        ])

    def test_insert_replace_remove(self):
        doc = self.make_document()
        doc.insert(0, Heading("Title", level=1))
        doc.insert(len(doc), paragraph("Last."))
        assert len(doc) == 5
        assert doc.blocks[0] == Heading("Title", level=1)

        doc.replace(2, paragraph("Changed."))
        assert doc.blocks[2].text() == "Changed."

        removed = doc.remove(4)
        assert removed.text() == "Last."
        assert len(doc) == 4

    def test_move(self):
        doc = self.make_document()
        doc.move(0, 2)
        assert [type(b) for b in doc.blocks] == [Paragraph, ListBlock, Heading]

    def test_out_of_range_positions(self):
        doc = self.make_document()
        with pytest.raises(IndexError):
            doc.replace(3, paragraph("x"))
        with pytest.raises(IndexError):
            doc.insert(4, paragraph("x"))
        with pytest.raises(IndexError):
            doc.remove(-1)

    def test_insert_table(self):
        doc = self.make_document().insert_table(1, 2, index=1)
        assert isinstance(doc.blocks[1], Table)
        assert doc.blocks[1].rows == (("Cell 1-1", "Cell 1-2"),)

    def test_set_heading_level(self):
        doc = self.make_document().set_heading_level(0, 4)
        assert doc.blocks[0].to_html() == "<h4>Intro</h4>"
        with pytest.raises(TypeError):
            doc.set_heading_level(1, 2)

    def test_render_and_plain_text(self):
        doc = self.make_document()
        assert doc.to_html() == "<h2>Intro</h2><p>First paragraph.</p><ul><li>one</li><li>two</li></ul>"
        assert doc.plain_text() == "Intro First paragraph. one two"

    def test_excerpt(self):
        doc = Document([paragraph("Infrastructure as code, with Terraform on Azure.")])
        assert doc.excerpt() == "Infrastructure as code, with Terraform on Azure."
        assert doc.excerpt(length=25) == "Infrastructure as code..."
