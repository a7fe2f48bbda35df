"""Tests for the file quality check."""

import json
from pathlib import Path

import pytest

from hookgate.changeset import build_change_set
from hookgate.checks.file_quality import (
    BOM,
    FileQualityChecker,
    detect_text_problems,
    fix_text,
    is_text,
    normalize_json,
    yaml_error,
)
from hookgate.constants import ChangeSource, CheckStatus


class TestFixText:
    """Tests for the text fixers."""

    def test_all_fixes(self) -> None:
        """Test BOM, CRLF, trailing whitespace and final newline are fixed."""
        data = BOM + b"line one  \r\nline two\t"
        fixed, applied = fix_text(data)

        assert fixed == b"line one\nline two\n"
        assert applied == [
            "UTF-8 byte order mark",
            "Windows (CRLF) line endings",
            "trailing whitespace",
            "missing newline at EOF",
        ]

    def test_fix_is_idempotent(self) -> None:
        """Test fixing already-fixed text changes nothing."""
        once, _ = fix_text(b"a \r\nb")
        twice, applied = fix_text(once)

        assert twice == once
        assert applied == []

    def test_clean_text_untouched(self) -> None:
        """Test clean content reports no problems."""
        assert detect_text_problems(b"clean\n") == []
        assert fix_text(b"clean\n") == (b"clean\n", [])

    def test_empty_file(self) -> None:
        """Test empty files need no newline."""
        assert detect_text_problems(b"") == []

    def test_is_text(self) -> None:
        """Test binary detection by NUL byte."""
        assert is_text(b"hello")
        assert not is_text(b"\x89PNG\x00\x00")
        assert not is_text(b"")


class TestStructuredFormats:
    """Tests for YAML and JSON helpers."""

    def test_normalize_json(self) -> None:
        """Test JSON is re-rendered with 4-space indent."""
        assert normalize_json('{"a":[1,2]}') == '{\n    "a": [\n        1,\n        2\n    ]\n}\n'

    def test_normalize_json_keeps_unicode(self) -> None:
        """Test non-ASCII characters are not escaped."""
        assert "é" in normalize_json('{"name": "café"}')

    def test_normalize_json_invalid(self) -> None:
        """Test invalid JSON raises ValueError."""
        with pytest.raises(ValueError):
            normalize_json("{broken")

    def test_yaml_error(self) -> None:
        """Test YAML parse errors are reported, multi-document YAML is fine."""
        assert yaml_error("a: 1\n---\nb: 2\n") is None
        assert yaml_error("key: [unclosed\n") is not None


class TestFileQualityChecker:
    """Tests for FileQualityChecker.run."""

    def test_autofix_rewrites_and_restages(self, tmp_repo: Path, make_context, git) -> None:
        """Test fixable problems are repaired and the file re-staged."""
        (tmp_repo / "notes.txt").write_bytes(b"hello  \r\nworld")
        git("add", "notes.txt", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["notes.txt"])

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.PASSED
        assert outcome.fixed == 1
        assert (tmp_repo / "notes.txt").read_bytes() == b"hello\nworld\n"
        assert git("diff", "--name-only", cwd=tmp_repo) == ""

    def test_second_run_finds_nothing(self, tmp_repo: Path, make_context, git) -> None:
        """Test autofix converges: a second pass fixes nothing."""
        (tmp_repo / "data.json").write_text('{"b":1}')
        git("add", "data.json", cwd=tmp_repo)

        FileQualityChecker().run(make_context(tmp_repo, ["data.json"]))
        content = (tmp_repo / "data.json").read_text()
        outcome = FileQualityChecker().run(make_context(tmp_repo, ["data.json"]))

        assert outcome.fixed == 0
        assert (tmp_repo / "data.json").read_text() == content
        assert json.loads(content) == {"b": 1}

    def test_no_autofix_reports(self, tmp_repo: Path, make_context, git) -> None:
        """Test problems fail the check when autofix is disabled."""
        (tmp_repo / "notes.txt").write_bytes(b"trailing \n")
        git("add", "notes.txt", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["notes.txt"], autofix=False)

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.FAILED
        assert (tmp_repo / "notes.txt").read_bytes() == b"trailing \n"
        assert "Files with trailing whitespace" in ctx.log.text()

    def test_invalid_yaml_fails(self, tmp_repo: Path, make_context, git) -> None:
        """Test YAML syntax errors fail the check."""
        (tmp_repo / "config.yaml").write_text("key: [unclosed\n")
        git("add", "config.yaml", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["config.yaml"])

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.FAILED
        assert "Invalid YAML: config.yaml" in ctx.log.text()

    def test_invalid_json_fails(self, tmp_repo: Path, make_context, git) -> None:
        """Test JSON syntax errors fail the check."""
        (tmp_repo / "data.json").write_text("{nope}\n")
        git("add", "data.json", cwd=tmp_repo)

        outcome = FileQualityChecker().run(make_context(tmp_repo, ["data.json"]))

        assert outcome.status is CheckStatus.FAILED

    def test_protected_branch(self, tmp_repo: Path, make_context, git) -> None:
        """Test committing staged files on main fails."""
        git("checkout", "-q", "main", cwd=tmp_repo)
        (tmp_repo / "ok.txt").write_text("fine\n")
        git("add", "ok.txt", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["ok.txt"])

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.FAILED
        assert "this branch is protected" in ctx.log.text()

    def test_protected_branch_ignored_without_staged_files(self, tmp_repo: Path, make_context, git) -> None:
        """Test sampled tracked files on main are not a commit to main."""
        git("checkout", "-q", "main", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["README.md"], staged=False)

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.PASSED

    def test_protected_branch_deletion_only(self, tmp_repo: Path, make_context, git) -> None:
        """Test a commit on main that only deletes files is still blocked."""
        git("checkout", "-q", "main", cwd=tmp_repo)
        git("rm", "-q", "README.md", cwd=tmp_repo)
        ctx = make_context(tmp_repo, [])
        ctx.change_set = build_change_set([], ChangeSource.STAGED, deleted=["README.md"])

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.FAILED
        assert "this branch is protected" in ctx.log.text()

    def test_deletion_only_on_feature_branch_skips(self, tmp_repo: Path, make_context, git) -> None:
        """Test deletions alone give nothing to check off protected branches."""
        git("rm", "-q", "README.md", cwd=tmp_repo)
        ctx = make_context(tmp_repo, [])
        ctx.change_set = build_change_set([], ChangeSource.STAGED, deleted=["README.md"])

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.SKIPPED

    def test_workflow_hardcoded_secret(self, tmp_repo: Path, make_context, git) -> None:
        """Test literal credentials in workflows fail the check."""
        workflow = tmp_repo / ".github" / "workflows" / "ci.yml"
        workflow.parent.mkdir(parents=True)
        workflow.write_text(
            "on: push\njobs:\n  build:\n    runs-on: ubuntu-latest\n    env:\n      token: 'abc123'\n"
            "    steps:\n      - uses: actions/checkout@v2\n"
        )
        git("add", ".", cwd=tmp_repo)
        ctx = make_context(tmp_repo, [".github/workflows/ci.yml"])

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.FAILED
        log = ctx.log.text()
        assert "may contain hardcoded secrets" in log
        assert "actions/checkout@v1/v2" in log

    def test_workflow_secret_reference_allowed(self, tmp_repo: Path, make_context, git) -> None:
        """Test secrets referenced through the secrets context are fine."""
        workflow = tmp_repo / ".github" / "workflows" / "ci.yml"
        workflow.parent.mkdir(parents=True)
        workflow.write_text("on: push\nenv:\n  token: '${{ secrets.TOKEN }}'\n")
        git("add", ".", cwd=tmp_repo)

        outcome = FileQualityChecker().run(make_context(tmp_repo, [".github/workflows/ci.yml"]))

        assert outcome.status is CheckStatus.PASSED

    def test_executable_without_shebang(self, tmp_repo: Path, make_context, git) -> None:
        """Test executable files must start with a shebang."""
        script = tmp_repo / "run.sh"
        script.write_text("echo hi\n")
        script.chmod(0o755)
        git("add", "run.sh", cwd=tmp_repo)
        git("update-index", "--chmod=+x", "run.sh", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["run.sh"])

        outcome = FileQualityChecker().run(ctx)

        assert outcome.status is CheckStatus.FAILED
        assert "Executable missing shebang: run.sh" in ctx.log.text()

    def test_no_files_skips(self, tmp_repo: Path, make_context) -> None:
        """Test a change-set of deleted files is skipped."""
        outcome = FileQualityChecker().run(make_context(tmp_repo, ["gone.txt"]))
        assert outcome.status is CheckStatus.SKIPPED
