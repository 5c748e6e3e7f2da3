import base64
import os

import pytest

import emojishift as es
import veilcrypt as vc


@pytest.fixture(scope="module")
def keys():
    return vc.generate_keypair()


def test_table_is_a_bijection():
    assert len(es.EMOJI256) == 256
    assert len(set(es.EMOJI256)) == 256


def test_table_is_prefix_free():
    table = set(es.EMOJI256)
    for sym in es.EMOJI256:
        for width in range(1, len(sym)):
            assert sym[:width] not in table


def test_table_order_is_stable():
    assert es.EMOJI256[0] == "😀"
    assert es.EMOJI256[64] == "☹️"
    assert es.EMOJI256[143] == "👁️"
    assert es.EMOJI256[255] == "🤺"


def test_every_byte_value_round_trips():
    data = bytes(range(256))
    assert es.emoji256_decode(es.emoji256_encode(data)) == data


@pytest.mark.parametrize("size", [1, 2, 3, 31, 300])
def test_base64_round_trip(size):
    b64 = base64.b64encode(os.urandom(size)).decode()
    assert es.unemojify(es.emojify(b64)) == b64


def test_encode_is_one_symbol_per_byte():
    out = es.emojify(base64.b64encode(b"\x00\x40\xff").decode())
    assert out == "😀" + "☹️" + "🤺"


def test_decode_skips_whitespace_and_noise():
    data = b"\x00\x01\x02\x03\x04"
    noisy = "  ".join(es.EMOJI256[b] for b in data) + "\n-- sent from my phone"
    assert es.unemojify(noisy) == base64.b64encode(data).decode()


def test_decode_returns_none_without_symbols():
    assert es.unemojify("") is None
    assert es.unemojify("plain words only") is None


def test_emojify_rejects_non_base64():
    with pytest.raises(es.InputNotBase64):
        es.emojify("not base64 at all!")
    with pytest.raises(es.InputNotBase64):
        es.emojify("ÀÁÂÃ")


def test_emojify_tolerates_line_breaks():
    b64 = base64.b64encode(b"hello world").decode()
    wrapped = b64[:6] + "\n" + b64[6:] + "\n"
    assert es.emojify(wrapped) == es.emoji256_encode(b"hello world")


def test_looks_emojified():
    assert es.looks_emojified(es.emoji256_encode(b"\x10\x20\x30\x40\x50"))
    assert not es.looks_emojified(es.emoji256_encode(b"\x10\x20\x30\x40"))
    assert not es.looks_emojified("")
    assert es.looks_emojified("lol 😀 ok 😃 yes 😄 no 😁 hm 😆")


def test_base64_ciphertext_is_not_detected(keys):
    for _ in range(5):
        env = vc.encrypt("some message", keys.public_key)
        assert not es.looks_emojified(env)


def test_seal_and_open_plain(keys):
    sealed = es.seal_message("hi there", keys.public_key)
    assert not es.looks_emojified(sealed)
    assert es.open_message("  " + sealed + "\n", keys.private_key) == "hi there"


def test_seal_and_open_emoji(keys):
    sealed = es.seal_message("hi there 👋", keys.public_key, emojify_output=True)
    assert es.looks_emojified(sealed)
    assert es.open_message(sealed, keys.private_key) == "hi there 👋"


def test_open_emoji_with_spacing(keys):
    sealed = es.seal_message("spaced", keys.public_key, emojify_output=True)
    spaced = " ".join(es.EMOJI256[b] for b in es.emoji256_decode(sealed))
    assert es.open_message(spaced, keys.private_key) == "spaced"
