"""
CLI entrypoint:
  article-audio https://example.com/article
  python -m article_audio https://example.com/article --json
"""

import argparse
import json
import sys
from typing import List, Optional


def main(argv: Optional[List[str]] = None) -> int:
    from article_audio.application.handler import describe_result
    from article_audio.application.pipeline import ArticleAudioPipeline
    from article_audio.config import load_settings
    from article_audio.errors import ConfigError
    from article_audio.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        description="Convert a web article into a published audio file"
    )
    parser.add_argument("url", help="Article URL to convert")
    parser.add_argument("--env-file", type=str, help="Load settings from this .env file")
    parser.add_argument("--log-level", type=str, help="Override LOG_LEVEL (DEBUG, INFO, ...)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Save into OUTPUT_DIR instead of uploading to Cloud Storage",
    )
    parser.add_argument("--json", action="store_true", help="Print the outcome as JSON")
    args = parser.parse_args(argv)

    overrides = {"publish_target": "local"} if args.local else {}
    try:
        settings = load_settings(env_file=args.env_file, **overrides)
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    configure_logging(args.log_level or settings.log_level, json_format=settings.log_json)

    print("=" * 60)
    print(f"Converting article to audio: {args.url}")
    print("=" * 60)

    try:
        pipeline = ArticleAudioPipeline.from_settings(settings)
    except Exception as e:
        # Client construction, e.g. missing Google credentials.
        print(f"❌ Could not set up the pipeline: {e}", file=sys.stderr)
        return 2
    result = pipeline.run(args.url)
    status, message = describe_result(result)

    if args.json:
        payload = {
            "ok": result.ok,
            "status": status,
            "state": result.state.value,
            "failed_stage": result.failed_stage.value if result.failed_stage else None,
            "artifact": result.artifact.to_dict() if result.artifact else None,
            "message": message,
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    elif result.ok:
        print(f"\n✅ Success! {message}")
    else:
        print(f"\n❌ {message}", file=sys.stderr)

    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
