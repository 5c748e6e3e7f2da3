# veilboard_app.py
# VeilBoard: Gradio UI (obfuscated compose + hybrid encryption + emoji transport)
#
# Each browser session gets its own ComposeSession in gr.State:
# a TextBuffer (per-word obfuscation), a RotatingMapper (live rotated view),
# an in-memory contact list and, optionally, a generated key pair.
# Nothing is persisted.

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import gradio as gr

import emojishift as es
import veilcrypt as vc
from veilbuffer import TextBuffer
from veilshift import RotatingMapper

log = logging.getLogger(__name__)

TICK_SECONDS = 1.0


CSS = """
<style>
#title { margin-bottom: 0.25rem; }
.small { opacity: 0.90; font-size: 0.92rem; }
</style>
"""

ABOUT_MD = r"""
## About VeilBoard

**While typing**, every finished word is swapped into random Unicode glyphs using
**its own** substitution mapping; only the word you are typing stays readable.
A second, **rotating** view re-maps the whole text and throws the mapping away
every 5–10 seconds.

**On send**, the readable text is encrypted for the selected contact:

- a fresh **AES-256** key encrypts the message (ECB / PKCS#7),
- the AES key is wrapped with the contact's **RSA-2048** public key (PKCS#1 v1.5),
- output is `len(4) | wrapped key | payload`, Base64.

**Emojify** re-encodes the Base64 envelope as one emoji per byte, for channels
that only pass "human" text. Decrypt detects emoji input automatically.

**Not provided:** authentication, key rotation, storage. Keys and contacts live
in this browser session only.
"""


@dataclass
class Contact:
    name: str
    public_key: str


@dataclass
class ComposeSession:
    buffer: TextBuffer = field(default_factory=TextBuffer)
    mapper: RotatingMapper = field(default_factory=RotatingMapper)
    contacts: Dict[str, Contact] = field(default_factory=dict)
    keypair: Optional[vc.KeyPair] = None


def _session(session: Optional[ComposeSession]) -> ComposeSession:
    return session if session is not None else ComposeSession()


def _views(s: ComposeSession):
    obfuscated = s.buffer.get_obfuscated_text()
    rotated = s.mapper.encode(s.buffer.get_readable_text())
    live = s.mapper.get_display_text(rotated, len(rotated))
    return obfuscated, live


def _word_count(s: ComposeSession) -> int:
    return sum(1 for slot in s.buffer.slots if slot.is_word)


# ============================================================
# Compose tab
# ============================================================

def do_type(session: Optional[ComposeSession], keys: str):
    s = _session(session)
    s.buffer.type_text(keys or "")
    obfuscated, live = _views(s)
    return s, obfuscated, live, "", f"{_word_count(s)} word(s) sealed, current: {s.buffer.current_word!r}"


def do_backspace(session: Optional[ComposeSession]):
    s = _session(session)
    s.buffer.delete_character()
    obfuscated, live = _views(s)
    return s, obfuscated, live, "Deleted."


def do_clear(session: Optional[ComposeSession]):
    s = _session(session)
    s.buffer.clear()
    return s, "", "", "Cleared."


def do_tick(session: Optional[ComposeSession]):
    s = _session(session)
    if s.mapper.check_and_rotate():
        log.debug("live view rotated to generation %d", s.mapper.generation)
    _, live = _views(s)
    return s, live


def do_reveal(session: Optional[ComposeSession], offset):
    s = _session(session)
    try:
        pos = int(offset)
    except (TypeError, ValueError):
        return s, "Error: offset must be a number."
    word = s.buffer.get_readable_word_at_position(pos)
    if word is None:
        return s, f"Offset {pos}: separator or past the end."
    return s, f"Offset {pos}: **{word}**"


def do_encrypt(session: Optional[ComposeSession], recipient: Optional[str], emojify: bool):
    s = _session(session)
    obfuscated, live = _views(s)

    contact = s.contacts.get(recipient or "")
    if contact is None:
        return s, "", obfuscated, live, "Error: select a recipient first (Keys tab → Contacts)."
    if s.buffer.is_empty():
        return s, "", obfuscated, live, "Error: nothing to encrypt."

    try:
        out = es.seal_message(s.buffer.get_readable_text(), contact.public_key, emojify_output=bool(emojify))
    except vc.VeilCryptError as e:
        log.warning("encryption for %r failed: %s", contact.name, e)
        return s, "", obfuscated, live, f"Error: {e}"

    s.buffer.clear()
    kind = "emojified" if emojify else "encrypted"
    return s, out, "", "", f"Message {kind} for {contact.name}."


# ============================================================
# Decrypt tab
# ============================================================

def do_decrypt(session: Optional[ComposeSession], text_in: str, private_key: str):
    s = _session(session)
    key = (private_key or "").strip()
    if not key and s.keypair is not None:
        key = s.keypair.private_key
    if not key:
        return s, "", "Error: no private key (generate one in the Keys tab or paste it)."
    if not (text_in or "").strip():
        return s, "", "Error: input is empty."

    try:
        out = es.open_message(text_in, key)
    except vc.VeilCryptError as e:
        log.warning("decryption failed: %s", e)
        return s, "", f"Error: {e}"

    via = "emoji" if es.looks_emojified(text_in) else "Base64"
    return s, out, f"Decrypted ({via} input)."


# ============================================================
# Keys tab
# ============================================================

def do_generate_keys(session: Optional[ComposeSession]):
    s = _session(session)
    try:
        s.keypair = vc.generate_keypair()
    except vc.KeyGenerationError as e:
        log.warning("key generation failed: %s", e)
        return s, "", "", f"Error: {e}"
    return s, s.keypair.public_key, s.keypair.private_key, "Generated RSA-2048 key pair (session only)."


def _contact_choices(s: ComposeSession, value: Optional[str]):
    names = sorted(s.contacts)
    return gr.Dropdown(choices=names, value=value if value in s.contacts else None)


def do_add_contact(session: Optional[ComposeSession], name: str, public_key: str):
    s = _session(session)
    name = (name or "").strip()
    if not name:
        return s, _contact_choices(s, None), "Error: contact name is empty."
    try:
        vc.string_to_public_key(public_key or "")
    except vc.RecipientKeyInvalid as e:
        return s, _contact_choices(s, None), f"Error: {e}"

    replaced = name in s.contacts
    s.contacts[name] = Contact(name, public_key.strip())
    verb = "Updated" if replaced else "Added"
    return s, _contact_choices(s, name), f"{verb} contact {name}."


def do_remove_contact(session: Optional[ComposeSession], name: Optional[str]):
    s = _session(session)
    if not name or name not in s.contacts:
        return s, _contact_choices(s, None), "Error: no such contact."
    del s.contacts[name]
    return s, _contact_choices(s, None), f"Removed contact {name}."


def do_swap(text_in: str, text_out: str):
    return text_out, text_in, "Swapped."


# ============================================================
# Layout
# ============================================================

def build_app():
    with gr.Blocks(title="VeilBoard — Gradio Demo") as demo:
        gr.HTML(CSS)
        state = gr.State(None)

        gr.Markdown("# VeilBoard — Obfuscated Compose & Hybrid Encryption", elem_id="title")
        gr.Markdown(
            "Type into the key box: **space** and **newline** seal a word with its own random glyph mapping, "
            "**⌫** removes the last character (or the last sealed word).",
            elem_classes=["small"],
        )

        with gr.Tabs():
            with gr.TabItem("Compose"):
                with gr.Row():
                    recipient = gr.Dropdown(choices=[], value=None, label="Recipient")
                    emojify = gr.Checkbox(value=False, label="Emojify output (one emoji per byte)")

                keys_in = gr.Textbox(label="Keys (typed characters are fed one by one)", lines=1)
                with gr.Row():
                    btn_type = gr.Button("Type")
                    btn_back = gr.Button("⌫")
                    btn_clear = gr.Button("Clear")

                preview = gr.Textbox(label="Per-word obfuscated view", lines=3, interactive=False)
                live = gr.Textbox(label="Rotating view (re-mapped every 5–10 s)", lines=3, interactive=False)

                with gr.Row():
                    offset = gr.Number(value=0, precision=0, minimum=0, label="Reveal word at offset")
                    btn_reveal = gr.Button("Reveal")

                btn_enc = gr.Button("Encrypt & Send", variant="primary")
                text_out = gr.Textbox(label="Output", lines=4)
                status = gr.Markdown("Tip: add a contact in the Keys tab, then type and Encrypt.")

                btn_type.click(do_type, inputs=[state, keys_in], outputs=[state, preview, live, keys_in, status])
                keys_in.submit(do_type, inputs=[state, keys_in], outputs=[state, preview, live, keys_in, status])
                btn_back.click(do_backspace, inputs=[state], outputs=[state, preview, live, status])
                btn_clear.click(do_clear, inputs=[state], outputs=[state, preview, live, status])
                btn_reveal.click(do_reveal, inputs=[state, offset], outputs=[state, status])
                btn_enc.click(
                    do_encrypt,
                    inputs=[state, recipient, emojify],
                    outputs=[state, text_out, preview, live, status],
                )

                timer = gr.Timer(TICK_SECONDS)
                timer.tick(do_tick, inputs=[state], outputs=[state, live])

            with gr.TabItem("Decrypt"):
                dec_in = gr.Textbox(label="Received message (Base64 or emoji)", lines=4)
                dec_key = gr.Textbox(label="Private key (blank = session key)", type="password")
                with gr.Row():
                    btn_dec = gr.Button("Decrypt")
                    btn_swap = gr.Button("Swap ↔")
                dec_out = gr.Textbox(label="Plaintext", lines=4)
                dec_status = gr.Markdown("")

                btn_dec.click(do_decrypt, inputs=[state, dec_in, dec_key], outputs=[state, dec_out, dec_status])
                btn_swap.click(do_swap, inputs=[dec_in, dec_out], outputs=[dec_in, dec_out, dec_status])

            with gr.TabItem("Keys"):
                btn_gen = gr.Button("Generate key pair")
                pub_out = gr.Textbox(label="My public key (share this)", lines=3)
                priv_out = gr.Textbox(label="My private key (keep secret)", type="password")
                keys_status = gr.Markdown("")
                btn_gen.click(do_generate_keys, inputs=[state], outputs=[state, pub_out, priv_out, keys_status])

                gr.Markdown("### Contacts")
                with gr.Row():
                    contact_name = gr.Textbox(label="Name")
                    contact_key = gr.Textbox(label="Public key (Base64 DER or PEM)", lines=2)
                with gr.Row():
                    btn_add = gr.Button("Add / update")
                    btn_remove = gr.Button("Remove selected recipient")
                btn_add.click(
                    do_add_contact,
                    inputs=[state, contact_name, contact_key],
                    outputs=[state, recipient, keys_status],
                )
                btn_remove.click(do_remove_contact, inputs=[state, recipient], outputs=[state, recipient, keys_status])

            with gr.TabItem("About"):
                gr.Markdown(ABOUT_MD)

    return demo


def main(argv=None):
    ap = argparse.ArgumentParser(description="VeilBoard Gradio demo")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=7860)
    ap.add_argument("--share", action="store_true", help="create a public Gradio link")
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = ap.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = build_app()
    app.launch(server_name=args.host, server_port=args.port, share=args.share)


if __name__ == "__main__":
    main()
