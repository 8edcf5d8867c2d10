from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import AppConfig, load_config
from .credentials import CredentialStore
from .errors import CardValidationError, CredentialError, OCRError, StorageError
from .importer import ImportSession
from .markup import render
from .quiz import QuizSession
from .storage import FileStorage
from .store import CardStore


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="wordcard")
    p.add_argument("--config", default=None, help="Config path (JSON); defaults are used when omitted")
    p.add_argument("--workspace", default=None, help="Storage root (overrides storage.root)")
    sub = p.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add one card")
    add.add_argument("--category", default="")
    add.add_argument("--question", required=True)
    add.add_argument("--answer", required=True)

    ls = sub.add_parser("list", help="List cards grouped by category")
    ls.add_argument("--category", default=None, help="Only this category")

    rm = sub.add_parser("delete", help="Delete a card")
    target = rm.add_mutually_exclusive_group(required=True)
    target.add_argument("--id", dest="card_id")
    target.add_argument("--index", type=int, help="Legacy positional index (0-based)")

    sub.add_parser("categories", help="Print distinct categories")

    it = sub.add_parser("import-text", help="Parse a text file into cards")
    it.add_argument("--file", required=True, help="Text file ('-' for stdin)")
    it.add_argument("--category", default="")
    it.add_argument("--dry-run", action="store_true", help="Print parsed cards without saving")

    ii = sub.add_parser("import-image", help="OCR an image and import the detected cards")
    ii.add_argument("--image", required=True)
    ii.add_argument("--category", default="")
    ii.add_argument("--engine", choices=["easyocr", "gemini"], default=None, help="OCR backend (overrides ocr.engine)")
    ii.add_argument("--lang", default=None, help="easyocr language codes, comma separated")
    ii.add_argument("--dry-run", action="store_true")

    rd = sub.add_parser("render", help="Render ^/_ markup to HTML")
    rd.add_argument("text")

    sub.add_parser("quiz", help="Run a shuffled quiz in the terminal")

    sk = sub.add_parser("set-key", help="Store the OCR service API key")
    sk.add_argument("api_key")
    sub.add_parser("clear-key", help="Remove the stored API key")

    return p


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    if args.workspace:
        storage = dict(cfg.storage)
        storage["root"] = args.workspace
        cfg = AppConfig(storage=storage, cards=cfg.cards, parser=cfg.parser, ocr=cfg.ocr)
    return cfg


def _storage(cfg: AppConfig) -> FileStorage:
    return FileStorage(root=cfg.storage_root, quota_bytes=cfg.storage.get("quota_bytes"))


def _open_store(cfg: AppConfig) -> CardStore:
    return CardStore(
        storage=_storage(cfg),
        errors_path=cfg.errors_path,
        default_category=str(cfg.cards["default_category"]),
        max_field_length=int(cfg.cards["max_field_length"]),
    )


def _import_session(cfg: AppConfig, store: CardStore, category: str, recognizer=None) -> ImportSession:
    return ImportSession(
        store=store,
        recognizer=recognizer,
        category=category,
        default_category=str(cfg.parser["default_category"]),
        max_image_size=int(cfg.ocr["max_image_size"]),
        max_text_length=int(cfg.parser["max_text_length"]),
        errors_path=cfg.errors_path,
    )


def cmd_add(args: argparse.Namespace, cfg: AppConfig) -> int:
    try:
        card = _open_store(cfg).create(args.category, args.question, args.answer)
    except CardValidationError as e:
        print(f"add_failed: {e.user_message}")
        return 1
    except StorageError as e:
        print(f"add_failed: {e.user_message} ({e})")
        return 1
    print(card.id)
    return 0


def cmd_list(args: argparse.Namespace, cfg: AppConfig) -> int:
    grouped = _open_store(cfg).by_category()
    for category, cards in grouped.items():
        if args.category is not None and category != args.category:
            continue
        print(f"[{category}] ({len(cards)})")
        for c in cards:
            print(f"  {c.id}  {c.question}  ->  {c.answer}")
    return 0


def cmd_delete(args: argparse.Namespace, cfg: AppConfig) -> int:
    target = args.card_id if args.card_id is not None else args.index
    try:
        removed = _open_store(cfg).delete(target)
    except StorageError as e:
        print(f"delete_failed: {e.user_message} ({e})")
        return 1
    print(f"removed={int(removed)}")
    return 0


def cmd_categories(args: argparse.Namespace, cfg: AppConfig) -> int:
    for name in _open_store(cfg).categories():
        print(name)
    return 0


def _finish_import(session: ImportSession, dry_run: bool) -> int:
    for c in session.extracted:
        print(f"{c.category}\t{c.question}\t{c.answer}")
    if not session.extracted:
        print("found=0")
        return 1
    if dry_run:
        print(f"found={len(session.extracted)} saved=0")
        return 0
    found = len(session.extracted)
    try:
        saved = session.save_all()
    except StorageError as e:
        print(f"import_failed: {e.user_message} ({e})")
        return 1
    print(f"found={found} saved={saved}")
    return 0


def cmd_import_text(args: argparse.Namespace, cfg: AppConfig) -> int:
    if args.file == "-":
        text = sys.stdin.read()
    else:
        text = Path(args.file).read_text(encoding="utf-8")
    session = _import_session(cfg, _open_store(cfg), args.category)
    session.run_text(text)
    return _finish_import(session, args.dry_run)


def _recognizer(cfg: AppConfig, engine: str, lang: str | None):
    if engine == "gemini":
        from .gemini import GeminiRecognizer

        return GeminiRecognizer(
            credentials=CredentialStore(_storage(cfg)),
            endpoint=str(cfg.ocr["endpoint"]),
            timeout=float(cfg.ocr["timeout"]),
            max_text_length=int(cfg.ocr["max_text_length"]),
            errors_path=cfg.errors_path,
        )
    if engine == "easyocr":
        from .ocr import EasyOCRRecognizer

        return EasyOCRRecognizer(
            lang=lang or str(cfg.ocr["lang"]),
            min_confidence=float(cfg.ocr["min_confidence"]),
            max_retries=int(cfg.ocr["max_retries"]),
            use_preprocessing=bool(cfg.ocr["preprocess"]),
            max_text_length=int(cfg.ocr["max_text_length"]),
            errors_path=cfg.errors_path,
        )
    raise ValueError(f"unknown OCR engine: {engine}")


def cmd_import_image(args: argparse.Namespace, cfg: AppConfig) -> int:
    from PIL import Image

    recognizer = _recognizer(cfg, args.engine or str(cfg.ocr["engine"]), args.lang)
    session = _import_session(cfg, _open_store(cfg), args.category, recognizer)
    try:
        with Image.open(args.image) as img:
            session.run_image(img.convert("RGB"))
    except OCRError as e:
        print(f"import_failed: {e.user_message} ({e})")
        return 1
    return _finish_import(session, args.dry_run)


def cmd_render(args: argparse.Namespace, cfg: AppConfig) -> int:
    print(render(args.text))
    return 0


def cmd_quiz(args: argparse.Namespace, cfg: AppConfig) -> int:
    quiz = QuizSession.start(_open_store(cfg))
    if quiz.total == 0:
        print("no cards: add some with `wordcard add` first")
        return 1
    while not quiz.finished:
        card = quiz.current()
        print(f"[{quiz.position + 1}/{quiz.total}] ({card.category}) {card.question}")
        if input("enter=show answer, q=quit > ").strip().lower() == "q":
            return 0
        quiz.reveal()
        print(f"    {card.answer}")
        quiz.advance()
    print("done")
    return 0


def cmd_set_key(args: argparse.Namespace, cfg: AppConfig) -> int:
    try:
        CredentialStore(_storage(cfg)).save(args.api_key)
    except (CredentialError, StorageError) as e:
        print(f"set_key_failed: {e.user_message}")
        return 1
    print("OK")
    return 0


def cmd_clear_key(args: argparse.Namespace, cfg: AppConfig) -> int:
    CredentialStore(_storage(cfg)).clear()
    print("OK")
    return 0


COMMANDS = {
    "add": cmd_add,
    "list": cmd_list,
    "delete": cmd_delete,
    "categories": cmd_categories,
    "import-text": cmd_import_text,
    "import-image": cmd_import_image,
    "render": cmd_render,
    "quiz": cmd_quiz,
    "set-key": cmd_set_key,
    "clear-key": cmd_clear_key,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = _resolve_config(args)

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)
    return handler(args, cfg)


if __name__ == "__main__":
    raise SystemExit(main())
