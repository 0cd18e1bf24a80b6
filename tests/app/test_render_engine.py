from __future__ import annotations

import os
import stat
from pathlib import Path, PurePosixPath

import pytest

from lynxforge.app.render import RenderEngine, is_binary
from lynxforge.domain.descriptor import AppIdentity, CustomerDescriptor
from lynxforge.domain.errors import RenderCollisionError
from lynxforge.domain.tokens import legacy_ruleset, placeholder_ruleset

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00LynxTemplate"


def _scaffold(root: Path) -> Path:
    android = root / "android"
    kotlin = android / "app" / "src" / "main" / "java" / "com" / "lynxtemplate"
    kotlin.mkdir(parents=True)
    (kotlin / "LynxTemplateApp.kt").write_text(
        "package com.lynxtemplate\n\nclass LynxTemplateApp : Application()\n", encoding="utf-8"
    )
    (kotlin / "MainActivity.kt").write_text("package com.lynxtemplate\n", encoding="utf-8")
    res = android / "app" / "src" / "main" / "res"
    (res / "values").mkdir(parents=True)
    (res / "values" / "themes.xml").write_text('<style name="Theme.LynxTemplate"/>\n', encoding="utf-8")
    (res / "mipmap").mkdir()
    (res / "mipmap" / "icon.png").write_bytes(PNG_BYTES)
    gradlew = android / "gradlew"
    gradlew.write_text("#!/bin/sh\necho LynxTemplate\n", encoding="utf-8")
    gradlew.chmod(0o755)
    (android / ".git").mkdir()
    (android / ".git" / "HEAD").write_text("ref: refs/heads/LynxTemplate\n", encoding="utf-8")

    ios = root / "ios" / "LynxTemplate"
    ios.mkdir(parents=True)
    (ios / "Info.plist").write_text("<string>com.lynxtemplate</string>\n", encoding="utf-8")
    return root


@pytest.fixture()
def engine() -> RenderEngine:
    return RenderEngine(legacy_ruleset(AppIdentity(app_name="Shop", bundle_id="com.acme.shop")))


def test_is_binary_detection() -> None:
    assert is_binary(PNG_BYTES)
    assert is_binary(b"\xff\xfe\xfd")
    assert not is_binary("plain ✓ text".encode("utf-8"))


def test_render_tree_renames_and_rewrites(tmp_path: Path, engine: RenderEngine) -> None:
    source = _scaffold(tmp_path / "scaffold") / "android"
    before = {p: p.read_bytes() for p in source.rglob("*") if p.is_file()}
    destination = tmp_path / "out" / "android"

    report = engine.render_tree(source, destination)

    kotlin = destination / "app" / "src" / "main" / "java" / "com" / "acme" / "shop"
    assert (kotlin / "ShopApp.kt").read_text(encoding="utf-8") == "package com.acme.shop\n\nclass ShopApp : Application()\n"
    assert (kotlin / "MainActivity.kt").read_text(encoding="utf-8") == "package com.acme.shop\n"
    themes = destination / "app" / "src" / "main" / "res" / "values" / "themes.xml"
    assert themes.read_text(encoding="utf-8") == '<style name="Theme.Shop"/>\n'
    assert (destination / "app" / "src" / "main" / "res" / "mipmap" / "icon.png").read_bytes() == PNG_BYTES
    assert not (destination / ".git").exists()
    assert stat.S_IMODE((destination / "gradlew").stat().st_mode) == 0o755

    assert PurePosixPath("app/src/main/res/mipmap/icon.png") in report.binary
    assert (
        PurePosixPath("app/src/main/java/com/lynxtemplate/LynxTemplateApp.kt"),
        PurePosixPath("app/src/main/java/com/acme/shop/ShopApp.kt"),
    ) in report.renamed
    # source stays pristine
    assert {p: p.read_bytes() for p in source.rglob("*") if p.is_file()} == before


def test_render_tree_refuses_to_overwrite(tmp_path: Path, engine: RenderEngine) -> None:
    source = _scaffold(tmp_path / "scaffold") / "ios"
    destination = tmp_path / "out"
    existing = destination / "Shop" / "Info.plist"
    existing.parent.mkdir(parents=True)
    existing.write_text("keep", encoding="utf-8")

    with pytest.raises(RenderCollisionError):
        engine.render_tree(source, destination)
    assert existing.read_text(encoding="utf-8") == "keep"
    assert sorted(p.name for p in destination.rglob("*")) == ["Info.plist", "Shop"]


def test_two_sources_rendering_to_same_target_fail_before_writing(tmp_path: Path, engine: RenderEngine) -> None:
    source = tmp_path / "src"
    source.mkdir()
    (source / "LynxTemplate.txt").write_text("a", encoding="utf-8")
    (source / "Shop.txt").write_text("b", encoding="utf-8")

    with pytest.raises(RenderCollisionError):
        engine.render_tree(source, tmp_path / "dest")
    assert not (tmp_path / "dest").exists()


def test_render_templates_strips_suffix_and_ignores_plain_files(tmp_path: Path) -> None:
    store = tmp_path / "store"
    (store / ".github" / "workflows").mkdir(parents=True)
    (store / ".github" / "workflows" / "build.yml.tmpl").write_text(
        "uses: __ORG__/lynx-native-template/.github/workflows/build-reusable.yml@__TEMPLATE_REF__\n",
        encoding="utf-8",
    )
    (store / "lynx-app.yaml.tmpl").write_text("app_name: __APP_NAME__\nbundle_id: __BUNDLE_ID__\n", encoding="utf-8")
    (store / "NOTES.md").write_text("not a template", encoding="utf-8")
    descriptor = CustomerDescriptor(
        organization="acme-inc", customer="acme", app_name="Shop", bundle_id="com.acme.shop"
    )

    report = RenderEngine(placeholder_ruleset(descriptor)).render_templates(store, tmp_path / "repo")

    repo = tmp_path / "repo"
    assert (repo / ".github" / "workflows" / "build.yml").read_text(encoding="utf-8") == (
        "uses: acme-inc/lynx-native-template/.github/workflows/build-reusable.yml@master\n"
    )
    assert (repo / "lynx-app.yaml").read_text(encoding="utf-8") == "app_name: Shop\nbundle_id: com.acme.shop\n"
    assert not (repo / "NOTES.md").exists()
    assert report.files == [PurePosixPath(".github/workflows/build.yml"), PurePosixPath("lynx-app.yaml")]
    # template store untouched
    assert (store / "lynx-app.yaml.tmpl").read_text(encoding="utf-8").startswith("app_name: __APP_NAME__")


def test_apply_in_place_moves_files_and_prunes_directories(tmp_path: Path, engine: RenderEngine) -> None:
    root = _scaffold(tmp_path / "project")
    (root / "README.md").write_text("LynxTemplate readme\n", encoding="utf-8")

    report = engine.apply_in_place(root, include=["ios", "android"])

    java = root / "android" / "app" / "src" / "main" / "java"
    assert (java / "com" / "acme" / "shop" / "ShopApp.kt").exists()
    assert not (java / "com" / "lynxtemplate").exists()
    assert (root / "ios" / "Shop" / "Info.plist").read_text(encoding="utf-8") == "<string>com.acme.shop</string>\n"
    assert not (root / "ios" / "LynxTemplate").exists()
    # outside the include list and inside .git nothing changes
    assert (root / "README.md").read_text(encoding="utf-8") == "LynxTemplate readme\n"
    assert (root / "android" / ".git" / "HEAD").read_text(encoding="utf-8") == "ref: refs/heads/LynxTemplate\n"
    assert PurePosixPath("ios/Shop/Info.plist") in report.files


def test_apply_in_place_collision_leaves_tree_untouched(tmp_path: Path, engine: RenderEngine) -> None:
    root = _scaffold(tmp_path / "project")
    clash = root / "ios" / "Shop" / "Info.plist"
    clash.parent.mkdir(parents=True)
    clash.write_text("existing", encoding="utf-8")
    snapshot = {p: p.read_bytes() for p in root.rglob("*") if p.is_file()}

    with pytest.raises(RenderCollisionError):
        engine.apply_in_place(root)

    assert {p: p.read_bytes() for p in root.rglob("*") if p.is_file()} == snapshot


def test_apply_in_place_is_idempotent(tmp_path: Path, engine: RenderEngine) -> None:
    root = _scaffold(tmp_path / "project")
    engine.apply_in_place(root)
    snapshot = {p: p.read_bytes() for p in root.rglob("*") if p.is_file()}

    second = engine.apply_in_place(root)

    assert second.files == []
    assert {p: p.read_bytes() for p in root.rglob("*") if p.is_file()} == snapshot
    assert os.access(root / "android" / "gradlew", os.X_OK)


def test_render_tree_keeps_symlinks_and_empty_directories(tmp_path: Path, engine: RenderEngine) -> None:
    source = tmp_path / "scaffold" / "ios"
    app_dir = source / "LynxTemplate"
    (app_dir / "Resources").mkdir(parents=True)
    (app_dir / "Info.plist").write_text("<string>LynxTemplate</string>\n", encoding="utf-8")
    (source / "current").symlink_to("LynxTemplate/Info.plist")
    (source / "LynxTemplateShared").symlink_to("LynxTemplate", target_is_directory=True)
    destination = tmp_path / "out" / "ios"

    report = engine.render_tree(source, destination)

    assert (destination / "Shop" / "Resources").is_dir()
    assert PurePosixPath("Shop/Resources") in report.directories
    assert os.readlink(destination / "current") == "Shop/Info.plist"
    assert (destination / "current").read_text(encoding="utf-8") == "<string>Shop</string>\n"
    shared = destination / "ShopShared"
    assert shared.is_symlink() and os.readlink(shared) == "Shop"
    assert sorted(report.links) == [PurePosixPath("ShopShared"), PurePosixPath("current")]
    assert report.files == [PurePosixPath("Shop/Info.plist")]
    assert (source / "current").is_symlink()


def test_existing_symlink_counts_as_collision(tmp_path: Path, engine: RenderEngine) -> None:
    source = tmp_path / "src"
    source.mkdir()
    (source / "LynxTemplate.txt").write_text("x", encoding="utf-8")
    destination = tmp_path / "dest"
    destination.mkdir()
    (destination / "Shop.txt").symlink_to("missing-target")

    with pytest.raises(RenderCollisionError):
        engine.render_tree(source, destination)


def test_apply_in_place_moves_empty_directories_and_links(tmp_path: Path, engine: RenderEngine) -> None:
    root = tmp_path / "project"
    (root / "ios" / "LynxTemplate" / "Assets").mkdir(parents=True)
    (root / "ios" / "LynxTemplate.entitlements").symlink_to("LynxTemplate/Assets")

    report = engine.apply_in_place(root, include=["ios"])

    assert (root / "ios" / "Shop" / "Assets").is_dir()
    assert not (root / "ios" / "LynxTemplate").exists()
    link = root / "ios" / "Shop.entitlements"
    assert link.is_symlink() and os.readlink(link) == "Shop/Assets"
    assert not os.path.lexists(root / "ios" / "LynxTemplate.entitlements")
    assert PurePosixPath("ios/Shop/Assets") in report.directories

    again = engine.apply_in_place(root, include=["ios"])
    assert again.directories == [] and again.links == []
