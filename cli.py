"""
Command-line runner for the Cloudinary build plugin.

Runs the plugin stages against an already generated site directory and
writes the resulting redirects to a _redirects file, for hosts (or local
builds) that do not call the hooks themselves.

Example:
    cloudinary-build --publish-dir public --input deliveryType=upload \
        --input folder=my-site --host https://example.com
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from errors import CloudinaryPluginError
from managers.redirect_manager import write_redirects_file
from models.redirect import Redirect
from plugin import CloudinaryPlugin

logger = logging.getLogger("Cloudinary")

STAGES = ("pre-build", "build", "post-build")


def parse_input_pairs(pairs: List[str]) -> Dict[str, str]:
    inputs = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Invalid --input '{pair}', expected key=value")
        inputs[key.strip()] = value.strip()
    return inputs


def load_inputs(path: Optional[Path]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Inputs file {path} must contain a JSON object")
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudinary-build",
        description="Upload site images to Cloudinary, add redirects and rewrite HTML image tags.",
    )
    parser.add_argument("--publish-dir", type=Path, required=True, help="Directory with the generated site.")
    parser.add_argument("--inputs", type=Path, help="JSON file with plugin inputs (deliveryType, folder, ...).")
    parser.add_argument(
        "--input",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Single plugin input, may be repeated. Overrides values from --inputs.",
    )
    parser.add_argument("--stage", choices=STAGES + ("all",), default="all", help="Stage to run (default: all).")
    parser.add_argument("--host", help="Public site host, overrides DEPLOY_PRIME_URL and NETLIFY_HOST for this run.")
    parser.add_argument("--redirects-file", type=Path, help="Where to write redirects (default: <publish-dir>/_redirects).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def run(args: argparse.Namespace, environ: Optional[Dict[str, str]] = None) -> int:
    environ = dict(os.environ if environ is None else environ)
    if args.host:
        # determine_host prefers one or the other depending on CONTEXT
        environ["DEPLOY_PRIME_URL"] = args.host
        environ["NETLIFY_HOST"] = args.host

    try:
        inputs = load_inputs(args.inputs)
        inputs.update(parse_input_pairs(args.input))
    except (OSError, ValueError, argparse.ArgumentTypeError) as e:
        logger.error(f"Invalid inputs: {e}")
        return 1

    netlify_config: Dict[str, Any] = {"build": {"environment": {}}, "redirects": []}
    constants = {"PUBLISH_DIR": str(args.publish_dir)}
    stages = STAGES if args.stage == "all" else (args.stage,)
    plugin = CloudinaryPlugin()

    try:
        if "pre-build" in stages:
            plugin.on_pre_build(netlify_config, constants, inputs, environ)
        if "build" in stages:
            if "pre-build" not in stages:
                # Nothing collected in this process, upload the assets first
                plugin.on_pre_build(netlify_config, constants, inputs, environ)
            plugin.on_build(netlify_config, constants, inputs, environ)
        if "post-build" in stages:
            plugin.on_post_build(netlify_config, constants, inputs, environ)
    except CloudinaryPluginError as e:
        logger.error(str(e))
        return 1

    if netlify_config["redirects"]:
        redirects = [Redirect.from_dict(redirect) for redirect in netlify_config["redirects"]]
        write_redirects_file(args.publish_dir, redirects, args.redirects_file)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(levelname)s: %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
