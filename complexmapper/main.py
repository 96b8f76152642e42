from __future__ import annotations

"""CLI entry point for Complex Mapper."""

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import __version__
from .app import explain
from .app.session_manager import SessionManager
from .config.config import load_config, validate_config
from .errors import ComplexMapperError, StorageError
from .models import Trial
from .results.imports import available_actions
from .results.package import verify_package
from .stats.ci_codes import aggregate_ci_counts, compute_ci_codes
from .stats.config import ScoringConfig
from .stats.scoring import format_summary, score_session
from .storage.annotations import SELF_TAG_ORDER, TrialAnnotation
from .storage.backends import DirectoryStorage
from .storage.report import build_storage_report
from .util.randomness import simulate_trials


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="complexmapper", description="Complex Mapper CLI")
    p.add_argument("--config", type=str, default=None, help="Path to YAML config")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("--explain", action="store_true", help="Trace milestones to stderr")
    p.add_argument("--data-dir", type=str, default=None, help="Override storage.data_dir")
    p.add_argument("--log-level", type=str, default="WARNING")
    sub = p.add_subparsers(dest="cmd")

    sp = sub.add_parser("score", help="Score a JSON list of trials")
    sp.add_argument("trials", type=str)
    sp.add_argument("--json", action="store_true", help="Print the full scoring JSON")

    sm = sub.add_parser("simulate", help="Create a deterministic simulated session")
    sm.add_argument("--pack", type=str, default="demo-10@1.0.0", help="id@version")
    sm.add_argument("--seed", type=int, default=1)
    sm.add_argument("--order", choices=["fixed", "seeded"], default="fixed")

    ep = sub.add_parser("export", help="Export a stored session")
    ep.add_argument("session_id", type=str)
    ep.add_argument("--format", choices=["bundle", "package", "csv"], default="package")
    ep.add_argument("--mode", choices=["full", "minimal", "redacted"], default=None)
    ep.add_argument("--anonymize", action="store_true", default=None)
    ep.add_argument("--redacted", action="store_true", help="CSV only: blank responses")
    ep.add_argument("--out-dir", type=str, default=None)

    vp = sub.add_parser("verify", help="Verify a pkg_v1 file")
    vp.add_argument("file", type=str)

    ip = sub.add_parser("import", help="Preview or import a pack, bundle or package")
    ip.add_argument("file", type=str)
    ip.add_argument("--action", choices=["session", "pack"], default=None)

    ss = sub.add_parser("sessions", help="List or prune stored sessions")
    ss.add_argument("--delete", type=str, default=None, metavar="ID")
    ss.add_argument("--delete-imported", action="store_true")
    ss.add_argument("--older-than", type=str, default=None, metavar="YYYY-MM-DD")
    ss.add_argument("--export-all", action="store_true")

    pk = sub.add_parser("packs", help="List or delete custom packs")
    pk.add_argument("--delete", type=str, default=None, metavar="ID@VERSION")

    an = sub.add_parser("annotate", help="Tag a trial")
    an.add_argument("session_id", type=str)
    an.add_argument("trial_index", type=int)
    an.add_argument("--tag", action="append", default=[], choices=list(SELF_TAG_ORDER))
    an.add_argument("--note", type=str, default="")

    dr = sub.add_parser("draft", help="Show or discard the in-progress session")
    dr.add_argument("--discard", action="store_true")

    sub.add_parser("report", help="Storage usage report")
    return p.parse_args(argv)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _split_key(key: str) -> Tuple[str, str]:
    pack_id, sep, version = key.partition("@")
    if not sep or not pack_id or not version:
        raise ComplexMapperError(f"Expected id@version, got '{key}'")
    return pack_id, version


def _cmd_score(args: argparse.Namespace, cfg: Dict[str, Any]) -> int:
    data = json.loads(Path(args.trials).read_text(encoding="utf-8"))
    raw = data.get("trials", []) if isinstance(data, dict) else data
    trials = [Trial.from_json(t) for t in raw]
    scoring = score_session(trials, ScoringConfig.from_config(cfg))
    codes = [
        compute_ci_codes(t.association.response, scoring.flags_for(i), t.stimulus.word)
        for i, t in enumerate(trials)
        if not t.is_practice
    ]
    if args.json:
        _print_json({"scoring": scoring.to_json(), "ciCounts": aggregate_ci_counts(codes)})
    else:
        print(format_summary(scoring.summary))
        counts = aggregate_ci_counts(codes)
        print("CI codes: " + (", ".join(f"{k}={v}" for k, v in counts.items()) or "none"))
    return 0


def _cmd_simulate(args: argparse.Namespace, mgr: SessionManager) -> int:
    pack_id, version = _split_key(args.pack)
    seed = args.seed if args.order == "seeded" else None
    draft = mgr.start_draft(pack_id, version, order_policy=args.order, seed=seed, trial_timeout_ms=3000)
    for trial in simulate_trials(draft.stimulus_order, args.seed, timeout_ms=3000):
        mgr.record_trial(draft, trial)
    session = mgr.complete_draft(draft)
    print(session.id)
    return 0


def _cmd_export(args: argparse.Namespace, mgr: SessionManager, cfg: Dict[str, Any]) -> int:
    export_cfg = cfg["export"]
    mode = args.mode or export_cfg["privacy_mode"]
    anonymize = export_cfg["anonymize"] if args.anonymize is None else args.anonymize
    if args.format == "bundle":
        art = mgr.export_bundle(args.session_id, mode, anonymize)
    elif args.format == "csv":
        art = mgr.export_csv(args.session_id, redacted=args.redacted)
    else:
        art = mgr.export_package(args.session_id, mode, anonymize)
    out_dir = Path(args.out_dir or export_cfg["out_dir"])
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / art.filename
    path.write_text(art.text, encoding="utf-8")
    print(str(path))
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    data = json.loads(Path(args.file).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ComplexMapperError("Not a package: top level must be an object")
    result = verify_package(data)
    _print_json(result.to_json())
    return 0 if result.valid else 2


def _cmd_import(args: argparse.Namespace, mgr: SessionManager) -> int:
    raw = Path(args.file).read_text(encoding="utf-8")
    preview = mgr.preview_import(raw)
    if preview is None:
        print("Could not detect a valid pack in this file.", file=sys.stderr)
        return 1
    actions = available_actions(preview)
    _print_json(
        {
            "type": preview.type,
            "wordCount": preview.word_count,
            "hash": preview.hash,
            "sizeBytes": preview.size_bytes,
            "integrity": preview.integrity.to_json() if preview.integrity else None,
            "warnings": [w.to_json() for w in preview.warnings],
            "actions": actions,
        }
    )
    if args.action == "session":
        session = mgr.import_session(preview)
        print(f"Imported session {session.id}")
    elif args.action == "pack":
        if preview.type == "package":
            pack, issues = mgr.extract_pack(preview)
        else:
            pack, issues = mgr.import_pack(preview.pack_data)
        if issues:
            for issue in issues:
                print(f"{issue.code}: {issue.message}", file=sys.stderr)
            return 1
        print(f'Imported "{pack.id}" ({len(pack.words)} words)')
    return 0


def _cmd_sessions(args: argparse.Namespace, mgr: SessionManager) -> int:
    store = mgr.sessions
    if args.delete:
        store.delete(args.delete)
        mgr.annotations.delete_session(args.delete)
    if args.delete_imported:
        print(f"Deleted {store.delete_imported()} imported session(s)")
    if args.older_than:
        cutoff = datetime.fromisoformat(args.older_than)
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        print(f"Deleted {store.delete_older_than(cutoff)} session(s)")
    if args.export_all:
        print(store.export_all())
        return 0
    for e in store.list():
        marker = " (imported)" if e.imported else ""
        print(f"{e.id}  {e.completed_at}  {e.stimulus_list_id}  trials={e.total_trials}{marker}")
    return 0


def _cmd_packs(args: argparse.Namespace, mgr: SessionManager) -> int:
    if args.delete:
        pack_id, version = _split_key(args.delete)
        if mgr.delete_pack(pack_id, version):
            print("Note: stored sessions still reference this pack; their snapshots are unaffected.")
    for p in mgr.packs.list():
        print(f"{p['id']}@{p['version']}  {p['language']}  words={p['wordCount']}  imported={p['importedAt']}")
    return 0


def _cmd_draft(args: argparse.Namespace, mgr: SessionManager) -> int:
    if mgr.sessions.is_draft_locked_by_other(mgr.owner_id):
        print("Draft is in use by another process.", file=sys.stderr)
        return 1
    if args.discard:
        mgr.discard_draft()
        print("Draft discarded.")
        return 0
    draft = mgr.resume_draft()
    if draft is None:
        print("No draft in progress.")
        return 0
    mgr.sessions.release_draft_lock(mgr.owner_id)
    total = len(draft.stimulus_order)
    print(f"{draft.id}  {draft.stimulus_list_id}@{draft.stimulus_list_version}  {draft.current_index}/{total}  saved {draft.saved_at}")
    return 0


def _cmd_annotate(args: argparse.Namespace, mgr: SessionManager) -> int:
    mgr.annotations.set_annotation(args.session_id, args.trial_index, TrialAnnotation(tuple(args.tag), args.note))
    _print_json(mgr.annotations.get_annotation_summary(args.session_id))
    return 0


def cli(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    if args.version:
        print(f"complexmapper {__version__}")
        sys.exit(0)

    explain.configure_logging(args.log_level, context="cli")
    explain.enable(args.explain)

    try:
        cfg = validate_config(load_config(args.config))
        if args.cmd is None:
            print("No command given. See --help.", file=sys.stderr)
            sys.exit(1)
        if args.cmd == "score":
            sys.exit(_cmd_score(args, cfg))
        if args.cmd == "verify":
            sys.exit(_cmd_verify(args))

        storage_cfg = cfg["storage"]
        storage = DirectoryStorage(args.data_dir or storage_cfg["data_dir"], storage_cfg["quota_bytes"])
        mgr = SessionManager(cfg, storage)
        if args.cmd == "simulate":
            code = _cmd_simulate(args, mgr)
        elif args.cmd == "export":
            code = _cmd_export(args, mgr, cfg)
        elif args.cmd == "import":
            code = _cmd_import(args, mgr)
        elif args.cmd == "sessions":
            code = _cmd_sessions(args, mgr)
        elif args.cmd == "packs":
            code = _cmd_packs(args, mgr)
        elif args.cmd == "draft":
            code = _cmd_draft(args, mgr)
        elif args.cmd == "annotate":
            code = _cmd_annotate(args, mgr)
        else:
            _print_json(build_storage_report(mgr.sessions, mgr.packs))
            code = 0
    except StorageError as e:
        print(f"ERROR: storage failure: {e}", file=sys.stderr)
        sys.exit(1)
    except (ComplexMapperError, ValueError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    cli()
