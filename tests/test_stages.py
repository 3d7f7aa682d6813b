from bs4 import BeautifulSoup

from paperparse.core import classify_block, normalize_element, split_bilingual
from paperparse.matchers import OverlayMatchers
from paperparse.sanitize import plain_text, sanitize_fragment
from paperparse.source import HEAD_PLACEHOLDER, is_lightweight_markup, lightweight_to_markup, preprocess_noise
from paperparse.tree import build_tree, collect_blocks, remove_global_noise, select_root

MATCHERS = OverlayMatchers()


def _first(markup: str, name: str):
    return BeautifulSoup(markup, "html.parser").find(name)


def test_lightweight_markup_detection():
    assert is_lightweight_markup("# Title\n\n- a\n- b")
    assert is_lightweight_markup("| a | b |\n|---|---|")
    assert not is_lightweight_markup("<p># not a heading</p>")
    assert not is_lightweight_markup("Just a sentence.")
    assert not is_lightweight_markup("")


def test_lightweight_lists_and_paragraphs():
    markup = lightweight_to_markup("- a\n- b\ntext line\ncontinued\n\n1. one\n2. two")

    assert markup.split("\n") == [
        "<ul>",
        "<li>a</li>",
        "<li>b</li>",
        "</ul>",
        "<p>text line continued</p>",
        "<ol>",
        "<li>one</li>",
        "<li>two</li>",
        "</ol>",
    ]


def test_lightweight_text_is_escaped():
    markup = lightweight_to_markup("# A & B\n\nx & y <z>")

    assert markup == "<h1>A &amp; B</h1>\n<p>x &amp; y &lt;z&gt;</p>"


def test_lightweight_table_and_image_lines():
    markup = lightweight_to_markup("| a | b |\n|---|---|\n| 1 | 2 |\n\n![Plot](figs/p.png)")

    assert markup.split("\n") == [
        "<table><thead><tr><th>a</th><th>b</th></tr></thead><tbody><tr><td>1</td><td>2</td></tr></tbody></table>",
        '<figure><img src="figs/p.png" alt="Plot"></figure>',
    ]


def test_lightweight_pipe_rows_without_separator_stay_paragraphs():
    assert lightweight_to_markup("| not | a table |") == "<p>| not | a table |</p>"


def test_lightweight_unterminated_fence_is_closed():
    markup = lightweight_to_markup("~~~\ncode line")

    assert markup == "<pre><code>code line</code></pre>"


def test_preprocess_strips_head_redundant_math_and_base():
    text = (
        "<html><head><title>x</title><script>1</script></head><body>"
        '<p>a<mjx-container jax="SVG"><svg><path d="M0"/></svg></mjx-container>'
        "<math><mi>x</mi></math><tex-math>x</tex-math></p>"
        '<base href="http://x/"></body></html>'
    )

    result = preprocess_noise(text, MATCHERS)

    assert result == f"<html>{HEAD_PLACEHOLDER}<body><p>a<tex-math>x</tex-math></p></body></html>"


def test_preprocess_keeps_non_vector_math_containers():
    text = '<p><mjx-container jax="CHTML">x</mjx-container></p>'

    assert preprocess_noise(text, MATCHERS) == text


def test_global_noise_removal():
    soup = build_tree(
        "<body><p>keep</p><script>x</script>"
        '<div aria-hidden="true">a</div>'
        '<div class="imt-fab">b</div>'
        '<div class="immersive-translate-input">c</div>'
        '<span style="display: none">d</span>'
        '<span class="math-tex" style="display:none">e</span></body>'
    )

    removed = remove_global_noise(soup, MATCHERS)

    assert removed == 5
    assert soup.body.get_text() == "keepe"


def test_select_root_prefers_first_candidate_on_ties():
    soup = build_tree('<html><body><div id="preview-content"><p>Body text</p></div></body></html>')

    root = select_root(soup, MATCHERS)

    assert root.get("id") == "preview-content"


def test_select_root_takes_largest_candidate():
    soup = build_tree("<html><body><article><p>Short.</p></article><p>Much longer trailing text.</p></body></html>")

    assert select_root(soup, MATCHERS).name == "body"


def test_select_root_without_body_uses_document():
    soup = build_tree("<p>Fragment</p>")

    assert select_root(soup, MATCHERS) is soup


def test_collect_blocks_flattens_lists_and_wrappers():
    soup = build_tree(
        "<div>"
        "<ul><li>One</li><li>Two <ul><li>Nested</li></ul></li></ul>"
        '<div class="abstract"><p>Abs</p></div>'
        "<div><span>Inline only</span></div>"
        '<div class="immersive-translate-input">skip me</div>'
        "<section><h2>Title</h2><blockquote><p>Quoted</p></blockquote></section>"
        "</div>"
    )

    blocks = collect_blocks(soup, MATCHERS)

    assert [(b.name, b.get_text().strip()) for b in blocks] == [
        ("li", "One"),
        ("li", "Two"),
        ("li", "Nested"),
        ("div", "Abs"),
        ("div", "Inline only"),
        ("h2", "Title"),
        ("p", "Quoted"),
    ]


def test_collect_blocks_keeps_inline_text_beside_block_children():
    soup = build_tree(
        "<div>Lead sentence.<p>Para one.</p>Between <em>runs</em>.<p>Para two.</p><!-- c -->  </div>"
        "<ul><li>Parent item text <ul><li>Nested</li></ul></li></ul>"
    )

    blocks = collect_blocks(soup, MATCHERS)

    assert [(b.name, b.get_text().strip()) for b in blocks] == [
        ("div", "Lead sentence."),
        ("p", "Para one."),
        ("div", "Between runs."),
        ("p", "Para two."),
        ("li", "Parent item text"),
        ("li", "Nested"),
    ]
    assert soup.div.get_text().startswith("Lead sentence.")


def test_collect_blocks_handles_deep_nesting():
    depth = 1200
    soup = build_tree("<div>" * depth + "<p>deep</p>" + "</div>" * depth)

    blocks = collect_blocks(soup, MATCHERS)

    assert [b.get_text() for b in blocks] == ["deep"]


def test_sanitize_strips_attributes_and_unknown_tags():
    markup = '<p><a href="x" onclick="y" style="color:red">l</a> <custom-tag>Hi</custom-tag> <font color="red">there</font></p>'

    assert sanitize_fragment(markup, MATCHERS) == '<p><a href="x">l</a> Hi there</p>'


def test_sanitize_drops_interactive_and_hidden_content():
    markup = (
        "<div>Text<script>x()</script><button>Go</button>"
        '<span style="display:none">hidden</span><!-- note -->'
        '<span class="immersive-translate-loading-spinner">...</span></div>'
    )

    assert sanitize_fragment(markup, MATCHERS) == "<div>Text</div>"


def test_sanitize_replaces_math_sources_with_delimited_tex():
    markup = '<span class="math-tex" style="display:none"> x^2 </span> rest <tex-math></tex-math>'

    assert sanitize_fragment(markup, MATCHERS) == "$x^2$ rest"


def test_sanitize_line_breaks():
    assert sanitize_fragment("one<br>two", MATCHERS) == "one two"
    assert sanitize_fragment("<pre>one<br>two</pre>", MATCHERS) == "<pre>one\ntwo</pre>"


def test_sanitize_preserves_whitespace_in_code():
    markup = "<p>a   \n b</p><pre><code>x  =  1\n  y</code></pre>"

    assert sanitize_fragment(markup, MATCHERS) == "<p>a b</p><pre><code>x  =  1\n  y</code></pre>"


def test_sanitize_vector_graphics_only_when_requested():
    markup = '<td><svg viewBox="0 0 5 5"><path d="M0 0"></path></svg></td>'

    assert "<svg" not in sanitize_fragment(markup, MATCHERS)
    kept = sanitize_fragment(markup, MATCHERS, keep_vector_graphics=True)
    assert "<svg" in kept
    assert 'd="M0 0"' in kept


def test_plain_text():
    assert plain_text("<p>a <b>b</b>\n c</p>") == "a b c"
    assert plain_text("<pre>\nx\n  y\n</pre>", preserve_whitespace=True) == "x\n  y"
    assert plain_text("") == ""


def test_split_bilingual_extracts_translation():
    block = _first(
        '<p>Hello world.<font class="immersive-translate-target-wrapper"><br>'
        '<font class="immersive-translate-target-inner">안녕 세계.</font></font></p>',
        "p",
    )

    chunks = split_bilingual(block, MATCHERS)

    assert chunks.primary == "Hello world."
    assert chunks.secondary == "안녕 세계."
    assert chunks.translated is True
    assert "immersive-translate-target-wrapper" in str(block)


def test_split_bilingual_wrapper_without_inner_trims_line_break():
    block = _first('<p>Text<font class="immersive-translate-target-wrapper"><br>직접</font></p>', "p")

    assert split_bilingual(block, MATCHERS).secondary == "직접"


def test_split_bilingual_removes_stray_block_wrappers():
    block = _first('<p>Text<span class="immersive-translate-target-translation-block-wrapper">stray</span></p>', "p")

    chunks = split_bilingual(block, MATCHERS)

    assert chunks.primary == "Text"
    assert chunks.secondary == ""
    assert chunks.translated is False


def test_split_bilingual_block_that_is_itself_a_wrapper():
    block = _first(
        '<div class="immersive-translate-target-wrapper">'
        '<div class="immersive-translate-target-inner">번역만 있음</div></div>',
        "div",
    )

    chunks = split_bilingual(block, MATCHERS)

    assert chunks.primary == ""
    assert chunks.secondary == "번역만 있음"


def test_split_bilingual_keeps_outer_markup_for_media():
    block = _first('<figure><img src="a.png"></figure>', "figure")

    chunks = split_bilingual(block, MATCHERS, "docs/paper.html")

    assert chunks.primary == '<figure><img src="docs/a.png"/></figure>'
    assert block.find("img")["src"] == "a.png"


def test_classify_block_variants():
    heading = _first("<h4>Setup</h4>", "h4")
    assert classify_block(heading)[0] == "heading"
    assert classify_block(heading)[1].heading_level == 4

    code = _first("<code>x = 1</code>", "code")
    assert classify_block(code)[0] == "code"

    wrapped_table = _first('<div><div class="table-caption">T1</div><table><tr><td>1</td></tr></table></div>', "div")
    kind, meta = classify_block(wrapped_table)
    assert kind == "table"
    assert meta.caption == "T1"

    text = _first("<p>Just words.</p>", "p")
    assert classify_block(text)[0] == "text"


def test_classify_block_reads_image_metadata_from_the_block_itself():
    kind, meta = classify_block(_first('<p>See <img src="a.png" alt="A" title="Plot"> here.</p>', "p"))
    assert kind == "image"
    assert (meta.src, meta.alt, meta.caption) == ("a.png", "A", "Plot")

    kind, meta = classify_block(_first('<img src="b.png">', "img"))
    assert kind == "image"
    assert (meta.src, meta.alt, meta.caption) == ("b.png", "", "")


def test_normalize_element():
    assert normalize_element("h3", "heading") == "h3"
    assert normalize_element("div", "table") == "table"
    assert normalize_element("p", "image") == "figure"
    assert normalize_element("img", "image") == "img"
    assert normalize_element("code", "code") == "pre"
    assert normalize_element("li", "text") == "li"
    assert normalize_element("section", "text") == "div"
