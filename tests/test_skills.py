"""Tests for skill install, batch install, removal, and ref resolution."""

import io
import tarfile
from pathlib import Path

import httpx
import pytest

from lobester.errors import InvalidRequestError, SkillInstallError
from lobester.skills.models import BatchStatus, SkillSource, SourceKind
from lobester.skills.refs import parse_skill_refs, resolve_skill_refs
from lobester.skills.sources import GitHubArchiveFetcher, parse_github_ref
from lobester.skills.store import (
    collect_skill_directories,
    read_skill_metadata,
    slugify,
    strip_wrapping_quotes,
)


def test_install_local_copies_content(workspace, make_skill):
    src = make_skill("writer", name="Writer Pro", key="writer_pro")
    skill = workspace.skills.install(SkillSource(kind="local", ref=str(src)))

    assert skill.name == "Writer Pro"
    assert skill.key == "writer_pro"
    assert Path(skill.local_path) == workspace.config.skills_dir / skill.id
    assert (Path(skill.local_path) / "prompt.md").read_text() == "Do the thing.\n"
    assert workspace.skills.get(skill.id) == skill


def test_install_local_accepts_quoted_path(workspace, make_skill):
    src = make_skill("quoted")
    skill = workspace.skills.install(SkillSource(kind="local", ref=f'"{src}"'))

    assert skill.source.ref == str(src.resolve())


def test_install_uses_skill_md_front_matter(workspace, make_skill):
    src = make_skill("md-skill", name="Markdown Helper", marker="SKILL.md")
    skill = workspace.skills.install(SkillSource(kind="local", ref=str(src)))

    assert skill.name == "Markdown Helper"
    assert skill.key == "markdown_helper"
    assert skill.version == "1.2"


def test_duplicate_keys_get_suffixes(workspace, make_skill):
    first = workspace.skills.install(SkillSource(kind="local", ref=str(make_skill("a", key="dup"))))
    second = workspace.skills.install(SkillSource(kind="local", ref=str(make_skill("b", key="dup"))))
    third = workspace.skills.install(SkillSource(kind="local", ref=str(make_skill("c", key="dup"))))

    assert [first.key, second.key, third.key] == ["dup", "dup_2", "dup_3"]


def test_install_missing_directory_fails(workspace, tmp_path):
    with pytest.raises(SkillInstallError) as excinfo:
        workspace.skills.install(SkillSource(kind="local", ref=str(tmp_path / "nope")))
    assert excinfo.value.code == "skill_install_failed"


def test_install_zip_is_unsupported(workspace):
    with pytest.raises(InvalidRequestError) as excinfo:
        workspace.skills.install(SkillSource(kind=SourceKind.ZIP, ref="/tmp/a.zip"))
    assert excinfo.value.code == "unsupported_source"


def test_batch_install_then_rerun_skips(workspace, skill_source, make_skill):
    make_skill("one")
    make_skill("nested/two", marker="SKILL.md")
    (skill_source / "not-a-skill").mkdir()

    first = workspace.skills.install_local_batch(str(skill_source))
    assert [r.status for r in first] == [BatchStatus.INSTALLED, BatchStatus.INSTALLED]
    assert all(r.skill is not None for r in first)

    second = workspace.skills.install_local_batch(str(skill_source))
    assert [r.status for r in second] == [BatchStatus.SKIPPED, BatchStatus.SKIPPED]
    assert len(workspace.skills.list()) == 2


def test_batch_install_without_skill_folders_fails(workspace, skill_source):
    (skill_source / "empty").mkdir()
    with pytest.raises(InvalidRequestError):
        workspace.skills.install_local_batch(str(skill_source))


def test_collect_skips_descending_into_skill_folders(tmp_path):
    outer = tmp_path / "outer"
    (outer / "inner").mkdir(parents=True)
    (outer / "SKILL.md").write_text("# outer")
    (outer / "inner" / "SKILL.md").write_text("# inner")

    assert collect_skill_directories(tmp_path) == [outer.resolve()]


def test_collect_respects_depth(tmp_path):
    deep = tmp_path / "a" / "b" / "c" / "d"
    deep.mkdir(parents=True)
    (deep / "SKILL.md").write_text("# deep")

    assert collect_skill_directories(tmp_path) == []
    assert collect_skill_directories(tmp_path, depth=4) == [deep.resolve()]


def test_remove_deletes_record_and_content(workspace, make_skill):
    skill = workspace.skills.install(SkillSource(kind="local", ref=str(make_skill("gone"))))

    assert workspace.skills.remove(skill.id) is True
    assert not Path(skill.local_path).exists()
    assert workspace.skills.get(skill.id) is None
    assert workspace.skills.remove(skill.id) is False


def test_helpers():
    assert strip_wrapping_quotes("  '\"/tmp/x\"'  ") == "/tmp/x"
    assert slugify("Hello, World!") == "hello_world"
    assert slugify("!!!") == "skill"


def test_metadata_with_invalid_json_falls_back_to_skill_md(tmp_path):
    (tmp_path / "lobester.json").write_text("{broken")
    (tmp_path / "SKILL.md").write_text("---\nname: Fallback\n---\nbody\n")

    assert read_skill_metadata(tmp_path).name == "Fallback"


# ---------------------------------------------------------------------------
# Skill refs
# ---------------------------------------------------------------------------


def test_parse_skill_refs():
    assert parse_skill_refs(None) == []
    assert parse_skill_refs(" a, skill B ,, c ") == ["a", "B", "c"]


def test_resolve_refs_by_id_key_and_name(workspace, make_skill):
    a = workspace.skills.install(SkillSource(kind="local", ref=str(make_skill("a", name="Alpha", key="alpha_key"))))
    b = workspace.skills.install(SkillSource(kind="local", ref=str(make_skill("b", name="Beta"))))
    skills = workspace.skills.list()

    assert resolve_skill_refs([a.id, "ALPHA_KEY", "beta"], skills) == [a.id, a.id, b.id]


def test_resolve_refs_reports_missing_and_ambiguous(workspace, make_skill):
    first = workspace.skills.install(SkillSource(kind="local", ref=str(make_skill("x1", name="Same Name"))))
    second = workspace.skills.install(SkillSource(kind="local", ref=str(make_skill("x2", name="Same Name"))))

    with pytest.raises(InvalidRequestError) as excinfo:
        resolve_skill_refs(["same name", "ghost"], workspace.skills.list())

    assert excinfo.value.code == "invalid_skill_refs"
    assert excinfo.value.details["missing"] == ["ghost"]
    assert excinfo.value.details["ambiguous"] == {"same name": [first.id, second.id]}


# ---------------------------------------------------------------------------
# GitHub sources
# ---------------------------------------------------------------------------


def _tarball(files: dict) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def test_parse_github_ref():
    ref = parse_github_ref("octo/skills#v1")
    assert (ref.owner, ref.repo, ref.revision) == ("octo", "skills", "v1")
    assert ref.tarball_url == "https://codeload.github.com/octo/skills/tar.gz/v1"
    assert parse_github_ref("octo/skills").revision == "HEAD"

    with pytest.raises(InvalidRequestError):
        parse_github_ref("not a ref")


def test_github_fetch_strips_top_level_and_rejects_traversal(tmp_path):
    archive = _tarball(
        {
            "skills-abc123/SKILL.md": "---\nname: Remote\n---\n",
            "skills-abc123/docs/readme.md": "hi",
            "skills-abc123/../escape.txt": "nope",
        }
    )
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=archive)

    fetcher = GitHubArchiveFetcher(transport=httpx.MockTransport(handler))
    out = fetcher.fetch("octo/skills", tmp_path)

    assert seen == ["https://codeload.github.com/octo/skills/tar.gz/HEAD"]
    assert (out / "SKILL.md").is_file()
    assert (out / "docs" / "readme.md").read_text() == "hi"
    assert not (tmp_path / "escape.txt").exists()


def test_github_fetch_http_error(tmp_path):
    fetcher = GitHubArchiveFetcher(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
    with pytest.raises(SkillInstallError):
        fetcher.fetch("octo/missing", tmp_path)


def test_install_from_github_uses_repo_name(config):
    from lobester.workspace import Workspace

    archive = _tarball({"tools-main/prompt.md": "hello"})
    fetcher = GitHubArchiveFetcher(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=archive)))
    workspace = Workspace.from_config(config, fetcher=fetcher)
    workspace.init_state()

    skill = workspace.skills.install(SkillSource(kind="github", ref="octo/tools"))
    assert skill.name == "tools"
    assert skill.source.kind == SourceKind.GITHUB
    assert (Path(skill.local_path) / "prompt.md").read_text() == "hello"
