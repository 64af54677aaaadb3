#!/usr/bin/env python3
"""
Check and repair post tags.

Usage:
  python3 scripts/reconcile_tags.py --check
  python3 scripts/reconcile_tags.py --fix [--from-comments] [--post-id 12 ...]
  python3 scripts/reconcile_tags.py --prune-orphans

--check exits with status 1 when any post's Post.tags disagrees with its tag
associations. --fix rewrites the associations from Post.tags, or with
--from-comments recomputes both sides from the comments (manual tags are lost).
--prune-orphans deletes tags no post carries anymore.
"""

import sys
import argparse
import os

# Ensure app/ is importable
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
APP_DIR = os.path.join(ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

try:
    from app import create_app
    from services.tag_maintenance import find_inconsistent_posts, reconcile_posts, prune_orphan_tags
except ImportError:
    print(
        "Failed to import application modules. Run this script from the project root or ensure PYTHONPATH contains app/."
    )
    raise


def main(args):
    app = create_app()
    with app.app_context():
        status = 0
        if args.check:
            inconsistent = find_inconsistent_posts()
            if inconsistent:
                print(f"{len(inconsistent)} inconsistent post(s): {', '.join(map(str, inconsistent))}")
                status = 1
            else:
                print("All posts consistent")

        if args.fix:
            repaired, failed = reconcile_posts(
                app.extensions["tag_service"], post_ids=args.post_id or None, from_comments=args.from_comments
            )
            for post_id, tags in repaired.items():
                print(f"Post {post_id}: {tags or '(no tags)'}")
            for post_id, error in failed.items():
                print(f"Post {post_id} FAILED: {error}")
            if failed:
                status = 2

        if args.prune_orphans:
            names = prune_orphan_tags()
            print(f"Removed {len(names)} unused tag(s)")
        return status


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--check", action="store_true", help="Report posts whose two tag representations disagree")
    parser.add_argument("--fix", action="store_true", help="Repair inconsistent posts (or those given with --post-id)")
    parser.add_argument("--from-comments", action="store_true", help="With --fix, recompute tags from comments")
    parser.add_argument("--post-id", type=int, action="append", help="Post to repair; repeatable")
    parser.add_argument("--prune-orphans", action="store_true", help="Delete tags without any post")
    args = parser.parse_args()
    if not (args.check or args.fix or args.prune_orphans):
        parser.error("nothing to do: pass --check, --fix or --prune-orphans")
    sys.exit(main(args))
