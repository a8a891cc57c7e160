from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .api import audit_file, pack_gltf
from .container.glb import load_glb
from .core.config import load_schema_file
from .core.diagnostics import AuditError
from .core.schema import validate_schema


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="gltfaudit")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check")
    check.add_argument("-s", "--schema", required=True)
    check.add_argument("--product", required=False)
    check.add_argument("--logs", required=False)
    check.add_argument("files", nargs="+")

    pack = sub.add_parser("pack")
    pack.add_argument("-o", "--output", required=True)
    pack.add_argument("files", nargs="+")

    inspect = sub.add_parser("inspect")
    inspect.add_argument("file")

    validate = sub.add_parser("validate-schema")
    validate.add_argument("schema")

    args = parser.parse_args(argv)

    try:
        if args.command == "check":
            result = audit_file(args.files, Path(args.schema), product=args.product, logs_dir=args.logs)
            print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
            if not result.passed:
                raise SystemExit(1)
            return

        if args.command == "pack":
            output = pack_gltf(args.files, args.output)
            print(json.dumps({"status": "ok", "output": str(output)}))
            return

        if args.command == "inspect":
            container = load_glb(Path(args.file))
            print(json.dumps(container.to_dict(), indent=2, sort_keys=True))
            return

        if args.command == "validate-schema":
            diagnostics = validate_schema(load_schema_file(Path(args.schema)))
            if diagnostics.has_errors():
                print(json.dumps(diagnostics.to_list(), indent=2, sort_keys=True))
                raise SystemExit(1)
            print(json.dumps({"status": "ok"}))
            return
    except AuditError as exc:
        print(json.dumps([exc.diagnostic.to_dict()], indent=2, sort_keys=True), file=sys.stderr)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
