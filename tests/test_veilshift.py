import random

import pytest

from veilshift import (
    PerWordMapper,
    ROTATING_ALPHABET,
    RotatingMapper,
    SubstitutionMapping,
    WORD_ALPHABET,
    random_code_point,
)


class FakeClock:
    def __init__(self, start=1_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


# ---- SubstitutionMapping ----

@pytest.mark.parametrize("seed", range(5))
def test_mapping_is_a_disjoint_bijection(seed):
    m = SubstitutionMapping.generate(ROTATING_ALPHABET, random.Random(seed))
    assert set(m.forward) == set(ROTATING_ALPHABET)
    assert len(set(m.forward.values())) == len(ROTATING_ALPHABET)
    assert not set(m.forward.values()) & set(ROTATING_ALPHABET)
    assert all(m.reverse[v] == k for k, v in m.forward.items())


def test_mapping_never_uses_surrogates():
    rng = random.Random(7)
    for _ in range(5000):
        cp = ord(random_code_point(rng))
        assert not 0xD800 <= cp <= 0xDFFF
        assert 0x20 <= cp < 0x10000


def test_mapping_passes_unknown_characters_through():
    m = SubstitutionMapping.generate("abc", random.Random(1))
    enc = m.encode("abcé")
    assert enc[-1] == "é"
    assert m.decode(enc) == "abcé"


def test_same_seed_same_mapping():
    a = SubstitutionMapping.generate(WORD_ALPHABET, random.Random(42))
    b = SubstitutionMapping.generate(WORD_ALPHABET, random.Random(42))
    assert a.forward == b.forward


# ---- RotatingMapper ----

def test_round_trip_within_a_generation(clock):
    rm = RotatingMapper(clock=clock, rng=random.Random(3))
    s = "Hello, World!\n\tI'm 42 <ok> [x] {y} ~`|\\/"
    enc = rm.encode(s)
    assert enc != s
    assert rm.decode(enc) == s


def test_interval_in_range(clock):
    rng = random.Random(11)
    rm = RotatingMapper(clock=clock, rng=rng)
    for _ in range(200):
        assert 5000 <= rm.rotation_interval_ms <= 10000
        clock.advance(rm.rotation_interval_ms)
        assert rm.check_and_rotate()


def test_no_rotation_before_interval(clock):
    rm = RotatingMapper(clock=clock, rng=random.Random(5))
    before = rm.mapping
    clock.advance(rm.rotation_interval_ms - 1)
    assert not rm.check_and_rotate()
    assert rm.mapping is before
    assert rm.generation == 1
    assert rm.time_until_rotation() == 1


def test_rotation_replaces_mapping(clock):
    rm = RotatingMapper(clock=clock, rng=random.Random(5))
    enc = rm.encode("secret")
    clock.advance(rm.rotation_interval_ms)
    assert rm.check_and_rotate()
    assert rm.generation == 2
    # old text no longer decodes through this instance
    assert rm.decode(enc) != "secret"
    assert rm.time_until_rotation() == rm.rotation_interval_ms


def test_encode_triggers_rotation(clock):
    rm = RotatingMapper(clock=clock, rng=random.Random(9))
    clock.advance(10_000)
    enc = rm.encode("abc")
    assert rm.generation == 2
    assert rm.decode(enc) == "abc"


def test_decode_does_not_rotate(clock):
    rm = RotatingMapper(clock=clock, rng=random.Random(9))
    clock.advance(10_000)
    rm.decode("abc")
    assert rm.generation == 1


def test_time_until_rotation_never_negative(clock):
    rm = RotatingMapper(clock=clock, rng=random.Random(2))
    clock.advance(50_000)
    assert rm.time_until_rotation() == 0.0


def test_rejects_bad_interval_bounds(clock):
    with pytest.raises(ValueError):
        RotatingMapper(clock=clock, min_interval_ms=10, max_interval_ms=5)


def _alnum_mapper(clock):
    # Letters map onto letters outside a-z/A-Z so that the obfuscated text keeps
    # its alphanumeric word runs.
    rm = RotatingMapper(alphabet="abcdefghijklmnopqrstuvwxyz", clock=clock, rng=random.Random(0))
    greek = "αβγδεζηθικλμνξοπρστυφχψωϊϋ"
    fwd = dict(zip(rm.alphabet, greek))
    rm.mapping = SubstitutionMapping(rm.alphabet, fwd, {v: k for k, v in fwd.items()})
    return rm


def test_display_text_reveals_word_under_cursor(clock):
    rm = _alnum_mapper(clock)
    enc = rm.mapping.encode("hello") + " " + rm.mapping.encode("world")
    assert rm.get_display_text(enc, 2) == "hello " + rm.mapping.encode("world")
    assert rm.get_display_text(enc, 8) == rm.mapping.encode("hello") + " world"


def test_display_text_on_boundary_picks_adjacent_run(clock):
    rm = _alnum_mapper(clock)
    enc = rm.mapping.encode("hello") + " " + rm.mapping.encode("world")
    # cursor right after "hello"
    assert rm.get_display_text(enc, 5) == "hello " + rm.mapping.encode("world")
    # cursor at the very end, out-of-range positions are clamped
    assert rm.get_display_text(enc, 99) == rm.mapping.encode("hello") + " world"
    assert rm.get_display_text("", 3) == ""


# ---- PerWordMapper ----

@pytest.mark.parametrize("word", ["hi", "there", "Don't!", "a1b2c3", "(x)"])
def test_word_round_trip(word):
    pw = PerWordMapper(rng=random.Random(1))
    enc = pw.encode_word(0, word)
    assert pw.decode_word(0, enc) == word


def test_unknown_index_is_fail_open():
    pw = PerWordMapper()
    assert pw.decode_word(17, "☃☄") == "☃☄"


def test_each_word_gets_its_own_mapping():
    pw = PerWordMapper(rng=random.Random(4))
    a = pw.encode_word(0, "same")
    b = pw.encode_word(1, "same")
    assert a != b
    assert pw.decode_word(0, a) == "same"
    assert pw.decode_word(1, b) == "same"


def test_reencoding_overwrites_index():
    pw = PerWordMapper(rng=random.Random(4))
    first = pw.encode_word(0, "word")
    second = pw.encode_word(0, "word")
    assert len(pw) == 1
    assert pw.decode_word(0, second) == "word"
    assert first != second


def test_delete_does_not_renumber():
    pw = PerWordMapper(rng=random.Random(8))
    encs = [pw.encode_word(i, w) for i, w in enumerate(["one", "two", "three"])]
    pw.delete_mapping(1)
    assert not pw.has_mapping(1)
    assert pw.decode_word(2, encs[2]) == "three"
    assert pw.decode_word(1, encs[1]) == encs[1]
    pw.delete_mapping(1)  # releasing twice is a no-op
    pw.clear()
    assert len(pw) == 0


def test_word_alphabet_has_no_whitespace():
    assert not any(c.isspace() for c in WORD_ALPHABET)
    pw = PerWordMapper(rng=random.Random(2))
    assert pw.encode_word(0, "a b")[1] == " "


def test_generate_skips_excluded_code_points():
    taken = SubstitutionMapping.generate("ab", random.Random(3)).forward["a"]
    m = SubstitutionMapping.generate("ab", random.Random(3), exclude=taken)
    assert taken not in m.reverse
    assert m.decode(m.encode("ab")) == "ab"


def test_word_with_foreign_glyph_round_trips():
    # a pass-through character that an unconstrained mapping would pick as a replacement
    foreign = SubstitutionMapping.generate(WORD_ALPHABET, random.Random(1)).forward["a"]
    word = "x" + foreign
    pw = PerWordMapper(rng=random.Random(1))
    assert pw.decode_word(0, pw.encode_word(0, word)) == word
