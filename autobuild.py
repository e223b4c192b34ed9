# autobuild.py - 校验站点元数据并生成第三方服务片段 (启用增量构建)

import os
import sys
import glob
import hashlib
import json
import argparse
from typing import Any, Dict, List, Optional

import config
import generator
from metadata import SiteMetadata, SiteMetadataError, load_site_metadata, to_json


# --- Manifest 辅助函数 (增量构建所需) ---
def manifest_path() -> str:
    return os.path.join(config.BUILD_DIR, config.MANIFEST_FILE)


def load_manifest() -> Dict[str, Any]:
    """加载上一次的构建清单文件。"""
    try:
        with open(manifest_path(), 'r', encoding='utf-8') as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def save_manifest(manifest: Dict[str, Any]):
    """保存当前的构建清单文件。"""
    try:
        with open(manifest_path(), 'w', encoding='utf-8') as f:
            json.dump(manifest, f, ensure_ascii=False, indent=4)
    except IOError as e:
        print(f"警告：无法写入构建清单文件 {manifest_path()}: {e}")


def get_full_content_hash(filepath: str) -> str:
    """计算文件的完整 SHA256 哈希值。用于 Manifest。"""
    h = hashlib.sha256()
    try:
        with open(filepath, 'rb') as file:
            while True:
                chunk = file.read(4096)
                if not chunk:
                    break
                h.update(chunk)
    except IOError:
        return ""
    return h.hexdigest()


def build_manifest(meta: SiteMetadata) -> Dict[str, Any]:
    """
    本次构建的清单。
    元数据按校验后的 JSON 计算哈希，这样环境变量的变化也会触发重新生成。
    """
    templates = sorted(glob.glob(os.path.join(config.TEMPLATE_DIR, '**', '*.html'), recursive=True))
    return {
        'metadata': hashlib.sha256(to_json(meta).encode('utf-8')).hexdigest(),
        'templates': {
            os.path.relpath(path, config.TEMPLATE_DIR).replace('\\', '/'): get_full_content_hash(path)
            for path in templates
        },
    }


def partial_path(name: str) -> str:
    return os.path.join(config.BUILD_DIR, config.PARTIALS_DIR_NAME, name)


def output_paths() -> List[str]:
    return [
        os.path.join(config.BUILD_DIR, config.METADATA_JSON_FILE),
        os.path.join(config.BUILD_DIR, config.INDEX_FILE),
        os.path.join(config.BUILD_DIR, config.CSP_FILE),
        partial_path(config.HEAD_PARTIAL),
        partial_path(config.ANALYTICS_PARTIAL),
        partial_path(config.COMMENTS_PARTIAL),
        partial_path(config.SEARCH_PARTIAL),
    ]


def build_site(metadata_path: Optional[str] = None, force: bool = False) -> bool:
    """
    校验站点元数据并生成输出。
    元数据无效时抛出 SiteMetadataError，不会生成任何文件。
    返回值表示是否重新生成了文件。
    """
    print("\n" + "="*40)
    print("   🚀 STARTING BUILD PROCESS (Incremental Build Enabled)")
    print("="*40 + "\n")

    # -------------------------------------------------------------------------
    # [1/4] 加载并校验站点元数据
    # -------------------------------------------------------------------------
    metadata_path = metadata_path or config.SITE_METADATA_FILE
    print(f"[1/4] Loading site metadata from {metadata_path}...")
    meta = load_site_metadata(metadata_path)

    analytics = meta.analytics.active
    print(f"   -> analytics: {analytics[0] if analytics else 'none'}")
    print(f"   -> comments:  {meta.comments.provider}")
    print(f"   -> search:    {meta.search.provider}")

    # -------------------------------------------------------------------------
    # [2/4] 增量构建检查
    # -------------------------------------------------------------------------
    print("\n[2/4] Checking build manifest...")
    os.makedirs(config.BUILD_DIR, exist_ok=True)

    old_manifest = load_manifest()
    new_manifest = build_manifest(meta)
    outputs_exist = all(os.path.exists(path) for path in output_paths())

    if not force and old_manifest == new_manifest and outputs_exist:
        print("   -> [SKIPPED] Metadata and templates unchanged")
        print("\n✅ BUILD COMPLETE (nothing to do)")
        return False
    print("   -> [REBUILDING] " + ("Forced" if force else "Metadata, templates or outputs changed"))

    # -------------------------------------------------------------------------
    # [3/4] 生成元数据 JSON、片段和页面骨架
    # -------------------------------------------------------------------------
    print("\n[3/4] Rendering integrations...")
    minify = config.MINIFY_OUTPUT

    generator.write_output(os.path.join(config.BUILD_DIR, config.METADATA_JSON_FILE), to_json(meta))
    generator.write_output(partial_path(config.HEAD_PARTIAL), generator.render_head(meta), minify)
    generator.write_output(partial_path(config.ANALYTICS_PARTIAL), generator.render_analytics(meta), minify)
    generator.write_output(partial_path(config.COMMENTS_PARTIAL), generator.render_comments(meta), minify)
    generator.write_output(partial_path(config.SEARCH_PARTIAL), generator.render_search(meta), minify)
    generator.write_output(os.path.join(config.BUILD_DIR, config.INDEX_FILE), generator.render_shell(meta), minify)

    policy = generator.format_content_security_policy(generator.content_security_policy(meta))
    generator.write_output(os.path.join(config.BUILD_DIR, config.CSP_FILE), policy + "\n")

    # -------------------------------------------------------------------------
    # [4/4] 保存新的构建清单
    # -------------------------------------------------------------------------
    print("\n[4/4] Saving manifest...")
    save_manifest(new_manifest)
    print("   -> Manifest file updated.")

    print("\n✅ BUILD COMPLETE")
    return True


def main(argv: Optional[List[str]] = None) -> int:
    arg_parser = argparse.ArgumentParser(description="Validate site metadata and render integration partials.")
    arg_parser.add_argument('--metadata', default=None, help="path to the site metadata YAML file")
    arg_parser.add_argument('--force', action='store_true', help="rebuild even if nothing changed")
    arg_parser.add_argument('--check', action='store_true', help="only validate the site metadata")
    args = arg_parser.parse_args(argv)

    try:
        if args.check:
            load_site_metadata(args.metadata)
            print("✅ site metadata is valid")
        else:
            build_site(args.metadata, force=args.force)
    except SiteMetadataError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
