#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
命令行导入：PSD → 元素列表 JSON

用法:
    python scripts/psd_to_elements.py design.psd --width 1080 --height 1080 --output design.json
"""

import argparse
import json
import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend"))

from config import settings, setup_logging
from host_page import MemoryPage
from psd_importer import ImportOptions, PSDImporter
from psd_reader import PSDFormatError

logger = logging.getLogger("psd_to_elements")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Convert a PSD file into editor document elements")
    parser.add_argument("psd", help="Input PSD file")
    parser.add_argument("--width", type=int, default=settings.canvas_width, help="Target canvas width")
    parser.add_argument("--height", type=int, default=settings.canvas_height, help="Target canvas height")
    parser.add_argument("--rasterize-text", action="store_true", help="Import text layers as images")
    parser.add_argument("--output", "-o", help="Output JSON file (default: stdout)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else None)

    page = MemoryPage(args.width, args.height)
    try:
        summary = PSDImporter().import_file(args.psd, page, ImportOptions(rasterize_text=args.rasterize_text))
    except (FileNotFoundError, PSDFormatError) as e:
        logger.error("[ERROR] %s", e)
        return 1

    payload = {
        "page": page.to_dict(),
        "summary": summary.model_dump(by_alias=True),
    }
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info("[SAVE] 已写入 %s", args.output)
    else:
        print(text)

    logger.info(
        "[SUCCESS] 成功 %d, 跳过 %d, 错误 %d",
        summary.converted, summary.skipped, summary.errors,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
