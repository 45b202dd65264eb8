"""Property-based tests using Hypothesis."""

from hypothesis import given, strategies as st

from usgcode.core.compactor import TokenClass, classify_token, compact_tokens
from usgcode.core.dimensions import resolve_dimensions, sanitise_number_string

coordinate_tokens = st.builds(
    lambda axis, value: f"{axis}{value}",
    st.sampled_from("XYZF"),
    st.floats(min_value=-1000, max_value=1000, allow_nan=False, allow_infinity=False),
)
command_tokens = st.builds(
    lambda letter, number: f"{letter}{number}",
    st.sampled_from("GMST"),
    st.integers(min_value=0, max_value=99),
)
comment_tokens = st.text(max_size=20).map(lambda text: f";{text}")


class TestSanitiseProperties:
    """Properties of lexical number filtering."""

    @given(st.text())
    def test_keeps_exactly_digits_and_points(self, text):
        expected = "".join(c for c in text if c in "0123456789.")
        assert sanitise_number_string(text) == expected

    @given(st.text())
    def test_idempotent(self, text):
        once = sanitise_number_string(text)
        assert sanitise_number_string(once) == once

    @given(
        st.floats(min_value=0, max_value=1e6, allow_nan=False),
        st.floats(min_value=0, max_value=1e6, allow_nan=False),
        st.floats(min_value=0.01, max_value=100, allow_nan=False),
        st.sampled_from(["mm", "px", "", "cm", "in"]),
    )
    def test_scale_is_uniform(self, width, height, scale, unit):
        w, h = f"{width:.3f}", f"{height:.3f}"
        unscaled = resolve_dimensions(w + unit, h + unit, 1.0)
        scaled = resolve_dimensions(w + unit, h + unit, scale)

        assert scaled.width.number == unscaled.width.number * scale
        assert scaled.height.number == unscaled.height.number * scale


class TestCompactorProperties:
    """Properties of the command stream compactor."""

    @given(st.lists(st.one_of(coordinate_tokens, command_tokens)))
    def test_newlines_match_command_tokens(self, tokens):
        output = compact_tokens(tokens)
        commands = [t for t in tokens if classify_token(t) is TokenClass.COMMAND]
        assert output.count("\n") == len(commands)

    @given(st.lists(st.one_of(coordinate_tokens, command_tokens, comment_tokens)))
    def test_comments_never_change_output(self, tokens):
        without_comments = [t for t in tokens if not t.startswith(";")]
        assert compact_tokens(tokens) == compact_tokens(without_comments)

    @given(st.lists(st.one_of(coordinate_tokens, command_tokens)))
    def test_output_is_concatenation_of_pieces(self, tokens):
        expected = "".join(
            f" {t}" if t[0] in "XYZF" else f"\n{t}" for t in tokens
        )
        assert compact_tokens(tokens) == expected

    @given(st.lists(coordinate_tokens, min_size=1))
    def test_coordinate_only_stream_starts_with_space(self, tokens):
        output = compact_tokens(tokens)
        assert output.startswith(" ")
        assert "\n" not in output
