"""Tests for the line tokenizer."""

import pytest

from hilite.grammar_registry import GrammarRegistry
from hilite.hilite_exceptions import ResolutionError
from hilite.tokenizer import ParseState, StackFrame, Token, Tokenizer


def _pairs(tokens):
    return [(t.value, t.scopes) for t in tokens]


class TestTokenizerBasics:
    """Test single-line tokenization."""

    def test_push_and_pop_on_one_line(self, strings_registry, tokenize):
        """Test a string opened and closed on the same line."""
        lines, state = tokenize(strings_registry, "source.strings", ['say "hi"'])

        assert _pairs(lines[0]) == [
            ('say ', ('source.strings',)),
            ('"', ('source.strings', 'punctuation.definition.string.begin')),
            ('hi', ('source.strings', 'string.quoted')),
            ('"', ('source.strings', 'punctuation.definition.string.end')),
        ]
        assert state.depth == 0

    def test_token_offsets(self, strings_registry, tokenize):
        """Test that token offsets are contiguous and cover the line."""
        lines, _ = tokenize(strings_registry, "source.strings", ['say "hi"'])
        tokens = lines[0]

        assert [t.start for t in tokens] == [0, 4, 5, 7]
        assert tokens[-1].end == len('say "hi"')
        for previous, current in zip(tokens, tokens[1:]):
            assert previous.end == current.start

    def test_empty_line_has_no_tokens(self, strings_registry, tokenize):
        """Test that an empty line produces no tokens and leaves the state alone."""
        lines, state = tokenize(strings_registry, "source.strings", [''])

        assert lines == [[]]
        assert state.depth == 0

    def test_unmatched_text_is_one_token(self, strings_registry, tokenize):
        """Test that text no rule matches is kept as a single token."""
        lines, _ = tokenize(strings_registry, "source.strings", ['plain words\n'])

        assert _pairs(lines[0]) == [('plain words\n', ('source.strings',))]

    def test_captures_split_match(self, demo_registry, tokenize):
        """Test that capture groups split a match into separately scoped tokens."""
        lines, _ = tokenize(demo_registry, "source.demo", ['def foo'])

        assert _pairs(lines[0]) == [
            ('def', ('source.demo', 'keyword.declaration.demo')),
            (' ', ('source.demo',)),
            ('foo', ('source.demo', 'entity.name.function.demo')),
        ]

    def test_meta_scope_covers_delimiters(self, demo_registry, tokenize):
        """Test that a meta scope applies to the delimiters and the content."""
        lines, state = tokenize(demo_registry, "source.demo", ['(1) # note'])

        assert _pairs(lines[0]) == [
            ('(', ('source.demo', 'meta.group.demo', 'punctuation.section.group.begin.demo')),
            ('1', ('source.demo', 'meta.group.demo', 'constant.numeric.demo')),
            (')', ('source.demo', 'meta.group.demo', 'punctuation.section.group.end.demo')),
            (' ', ('source.demo',)),
            ('# note', ('source.demo', 'comment.line.demo')),
        ]
        assert state.depth == 0

    def test_prototype_applies_in_pushed_context(self, demo_registry, tokenize):
        """Test that prototype rules are active inside pushed contexts."""
        lines, state = tokenize(demo_registry, "source.demo", ['(# open\n'])

        assert ('# open', ('source.demo', 'meta.group.demo', 'comment.line.demo')) in _pairs(lines[0])
        assert state.depth == 1

    def test_prototype_can_be_excluded(self, demo_registry, tokenize):
        """Test that a context with meta_include_prototype false ignores the prototype."""
        lines, _ = tokenize(demo_registry, "source.demo", ["'a # b'"])

        assert _pairs(lines[0]) == [
            ("'", ('source.demo', 'string.quoted.single.demo', 'punctuation.definition.string.begin.demo')),
            ('a # b', ('source.demo', 'string.quoted.single.demo')),
            ("'", ('source.demo', 'string.quoted.single.demo', 'punctuation.definition.string.end.demo')),
        ]

    def test_pop_in_main_context_is_a_match(self):
        """Test that a pop with nothing to pop just scopes the matched text."""
        registry = GrammarRegistry.from_sources([("popper.yaml", """
scope: source.popper
contexts:
  main:
    - match: 'x'
      scope: keyword.x
      pop: true
""")])
        tokenizer = Tokenizer(registry)
        state = tokenizer.initial_state(registry.find_by_scope("source.popper"))
        tokens = tokenizer.tokenize_line(state, "axb")

        assert _pairs(tokens) == [
            ('a', ('source.popper',)),
            ('x', ('source.popper', 'keyword.x')),
            ('b', ('source.popper',)),
        ]
        assert state.depth == 0


class TestRuleSelection:
    """Test which rule wins when several match."""

    @pytest.fixture
    def registry(self):
        return GrammarRegistry.from_sources([("order.yaml", """
scope: source.order
contexts:
  main:
    - match: 'c'
      scope: late
    - match: 'ab'
      scope: first
    - match: 'abc'
      scope: second
""")])

    def test_earliest_match_wins(self, registry, tokenize):
        """Test that a match starting earlier wins over an earlier declared rule."""
        lines, _ = tokenize(registry, "source.order", ['xabc'])

        assert _pairs(lines[0])[1] == ('ab', ('source.order', 'first'))

    def test_first_declared_rule_wins_tie(self, registry, tokenize):
        """Test that the first declared rule wins when two match at the same position."""
        lines, _ = tokenize(registry, "source.order", ['abc'])

        assert _pairs(lines[0]) == [
            ('ab', ('source.order', 'first')),
            ('c', ('source.order', 'late')),
        ]


class TestMultiLineState:
    """Test state carried between lines."""

    def test_unterminated_string_carries_over(self, strings_registry):
        """Test that an open string continues on the next line."""
        tokenizer = Tokenizer(strings_registry)
        state = tokenizer.initial_state(strings_registry.find_by_scope("source.strings"))

        first = tokenizer.tokenize_line(state, '"abc\n')
        assert state.depth == 1
        assert _pairs(first) == [
            ('"', ('source.strings', 'punctuation.definition.string.begin')),
            ('abc\n', ('source.strings', 'string.quoted')),
        ]

        second = tokenizer.tokenize_line(state, 'def"\n')
        assert state.depth == 0
        assert _pairs(second) == [
            ('def', ('source.strings', 'string.quoted')),
            ('"', ('source.strings', 'punctuation.definition.string.end')),
            ('\n', ('source.strings',)),
        ]

    def test_line_by_line_matches_fresh_run(self, demo_registry, tokenize):
        """Test that resuming from a saved state gives the same tokens as one pass."""
        lines = ['def f(1,\n', "  '2',\n", '  3) # done\n', 'return 4\n']
        whole, final_state = tokenize(demo_registry, "source.demo", lines)

        tokenizer = Tokenizer(demo_registry)
        state = tokenizer.initial_state(demo_registry.find_by_scope("source.demo"))
        tokenizer.tokenize_line(state, lines[0])
        saved = state.copy()

        resumed = [tokenizer.tokenize_line(saved, line) for line in lines[1:]]
        assert resumed == whole[1:]
        assert saved == final_state

    def test_copy_is_independent(self, strings_registry):
        """Test that a copied state is not changed by tokenizing with the original."""
        tokenizer = Tokenizer(strings_registry)
        state = tokenizer.initial_state(strings_registry.find_by_scope("source.strings"))
        snapshot = state.copy()

        tokenizer.tokenize_line(state, '"open\n')

        assert state.depth == 1
        assert snapshot.depth == 0
        assert snapshot != state


class TestBackReferences:
    """Test contexts whose end pattern refers to the text that opened them."""

    def test_heredoc_closes_on_matching_word(self, demo_registry, tokenize):
        """Test that only the word captured at the start closes the context."""
        lines, state = tokenize(
            demo_registry, "source.heredoc", ['cat <<EOF\n', 'EOFX\n', 'EOF\n', 'after\n']
        )

        assert _pairs(lines[0]) == [
            ('cat ', ('source.heredoc',)),
            ('<<EOF', ('source.heredoc', 'keyword.heredoc.begin')),
            ('\n', ('source.heredoc', 'string.heredoc')),
        ]
        assert _pairs(lines[1]) == [('EOFX\n', ('source.heredoc', 'string.heredoc'))]
        assert _pairs(lines[2]) == [
            ('EOF', ('source.heredoc', 'keyword.heredoc.end')),
            ('\n', ('source.heredoc',)),
        ]
        assert _pairs(lines[3]) == [('after\n', ('source.heredoc',))]
        assert state.depth == 0

    def test_different_word_does_not_close(self, demo_registry, tokenize):
        """Test that another heredoc's terminator is just content."""
        lines, state = tokenize(demo_registry, "source.heredoc", ['<<END\n', 'EOF\n'])

        assert _pairs(lines[1]) == [('EOF\n', ('source.heredoc', 'string.heredoc'))]
        assert state.depth == 1

    def test_groups_are_kept_on_the_stack(self, demo_registry):
        """Test that the pushing match's groups are stored with the frame."""
        tokenizer = Tokenizer(demo_registry)
        state = tokenizer.initial_state(demo_registry.find_by_scope("source.heredoc"))
        tokenizer.tokenize_line(state, '<<DONE\n')

        assert state.stack[-1].groups == ('DONE',)

    def test_own_group_in_main_context(self):
        """Test that a pattern can refer back to a group it defines itself."""
        registry = GrammarRegistry.from_sources([("quotes.yaml", """
scope: source.quotes
contexts:
  main:
    - match: '(["'']).*?\\1'
      scope: string.quoted
""")])
        tokenizer = Tokenizer(registry)
        state = tokenizer.initial_state(registry.find_by_scope("source.quotes"))

        assert _pairs(tokenizer.tokenize_line(state, "'ab' x\n")) == [
            ("'ab'", ('source.quotes', 'string.quoted')),
            (' x\n', ('source.quotes',)),
        ]

    def test_own_groups_and_entry_groups_together(self):
        """Test that references past a pattern's own groups use the text that opened the context."""
        registry = GrammarRegistry.from_sources([("tags.yaml", """
scope: source.tags
contexts:
  main:
    - match: '(<)(\\w+)>'
      scope: tag.open
      push: body
  body:
    - meta_content_scope: tag.body
    - match: '(\\w)\\1'
      scope: letter.double
    - match: '(</)\\2>'
      scope: tag.close
      pop: true
""")])
        tokenizer = Tokenizer(registry)
        state = tokenizer.initial_state(registry.find_by_scope("source.tags"))

        assert _pairs(tokenizer.tokenize_line(state, "<b>xaay</i></b>\n")) == [
            ('<b>', ('source.tags', 'tag.open')),
            ('x', ('source.tags', 'tag.body')),
            ('aa', ('source.tags', 'tag.body', 'letter.double')),
            ('y</i>', ('source.tags', 'tag.body')),
            ('</b>', ('source.tags', 'tag.close')),
            ('\n', ('source.tags',)),
        ]
        assert state.depth == 0


class TestEmptyTransitions:
    """Test that zero-length pushes and pops cannot loop forever."""

    def test_zero_length_push_pop_loop_terminates(self):
        """Test that a push/pop pair that never consumes input still finishes."""
        registry = GrammarRegistry.from_sources([("loop.yaml", """
scope: source.loop
contexts:
  main:
    - match: '(?=x)'
      push: inner
  inner:
    - match: '(?=x)'
      pop: true
""")])
        tokenizer = Tokenizer(registry)
        state = tokenizer.initial_state(registry.find_by_scope("source.loop"))
        tokens = tokenizer.tokenize_line(state, "xyz\n")

        assert ''.join(t.value for t in tokens) == "xyz\n"
        assert all(t.value for t in tokens)

    def test_zero_length_match_rule_is_skipped(self):
        """Test that a match rule that only matches empty text does not stall."""
        registry = GrammarRegistry.from_sources([("empty.yaml", """
scope: source.empty
contexts:
  main:
    - match: 'a*'
      scope: letter.a
""")])
        tokenizer = Tokenizer(registry)
        state = tokenizer.initial_state(registry.find_by_scope("source.empty"))
        tokens = tokenizer.tokenize_line(state, "bab")

        assert _pairs(tokens) == [
            ('b', ('source.empty',)),
            ('a', ('source.empty', 'letter.a')),
            ('b', ('source.empty',)),
        ]


class TestResolutionErrors:
    """Test mixing grammars, states and registries."""

    def test_grammar_from_other_registry(self, strings_registry, demo_registry):
        """Test that a grammar from another registry is rejected."""
        tokenizer = Tokenizer(demo_registry)

        with pytest.raises(ResolutionError):
            tokenizer.initial_state(strings_registry.find_by_scope("source.strings"))

    def test_state_from_other_registry(self, strings_registry, demo_registry):
        """Test that a parse state created for another registry is rejected."""
        state = Tokenizer(strings_registry).initial_state(strings_registry.find_by_scope("source.strings"))

        with pytest.raises(ResolutionError):
            Tokenizer(demo_registry).tokenize_line(state, "text")

    def test_frame_outside_arena(self, strings_registry):
        """Test that a corrupted stack frame is reported."""
        state = ParseState(strings_registry.find_by_scope("source.strings"), strings_registry)
        state.stack[0] = StackFrame(context=10_000)

        with pytest.raises(ResolutionError):
            Tokenizer(strings_registry).tokenize_line(state, "text")


class TestToken:
    """Test the token value type."""

    def test_end_offset(self):
        """Test that end is start plus length."""
        token = Token(scopes=('source.x',), value='abc', start=4)
        assert token.end == 7
