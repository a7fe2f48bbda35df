"""Tests for change-set resolution and classification."""

from pathlib import Path

import pytest

from hookgate.changeset import build_change_set, classify_change_set, classify_path, resolve_change_set
from hookgate.constants import ChangeSource, FileCategory
from hookgate.git import GitRepo


class TestClassifyPath:
    """Tests for per-path classification."""

    @pytest.mark.parametrize(
        ("path", "category"),
        [
            ("app/main.py", FileCategory.PYTHON),
            ("web/index.js", FileCategory.JAVASCRIPT),
            ("web/App.jsx", FileCategory.JAVASCRIPT),
            ("web/app.ts", FileCategory.TYPESCRIPT),
            ("web/App.tsx", FileCategory.TYPESCRIPT),
            ("infra/main.tf", FileCategory.TERRAFORM),
            ("infra/terragrunt.hcl", FileCategory.TERRAFORM),
            ("Dockerfile", FileCategory.DOCKER),
            ("services/api/Dockerfile.prod", FileCategory.DOCKER),
            ("docker-compose.yml", FileCategory.DOCKER),
            ("deploy/docker-compose.override.yaml", FileCategory.DOCKER),
            ("docker-bake.hcl", FileCategory.DOCKER_BAKE),
            ("build/bake.hcl", FileCategory.DOCKER_BAKE),
            ("kubernetes/base/deployment.yaml", FileCategory.KUSTOMIZE),
            ("overlays/prod/kustomization.yml", FileCategory.KUSTOMIZE),
            ("config.yaml", FileCategory.YAML),
            ("package.json", FileCategory.JSON),
            ("pyproject.toml", FileCategory.TOML),
            ("hooks/run.sh", FileCategory.SHELL),
            (".github/workflows/ci.yml", FileCategory.WORKFLOW),
        ],
    )
    def test_categories(self, path: str, category: FileCategory) -> None:
        """Test each category is detected."""
        assert category in classify_path(path)

    def test_unknown_file_has_no_category(self) -> None:
        """Test a plain text file is unclassified."""
        assert classify_path("README.md") == frozenset()

    def test_multiple_categories(self) -> None:
        """Test a bake file is both terraform-like and docker_bake."""
        assert classify_path("docker-bake.hcl") == {FileCategory.TERRAFORM, FileCategory.DOCKER_BAKE}

    def test_workflow_is_also_yaml(self) -> None:
        """Test workflows keep their yaml category."""
        assert classify_path(".github/workflows/ci.yaml") == {FileCategory.YAML, FileCategory.WORKFLOW}

    def test_nested_workflow_dir_is_not_workflow(self) -> None:
        """Test only top-level .github/workflows files count."""
        assert FileCategory.WORKFLOW not in classify_path("sub/.github/workflows/ci.yml")

    def test_pure_function(self) -> None:
        """Test classification is deterministic and needs no files."""
        assert classify_path("missing/dir/x.py") == classify_path("missing/dir/x.py")


class TestClassifyChangeSet:
    """Tests for change-set classification."""

    def test_union(self) -> None:
        """Test the union of all path categories."""
        categories = classify_change_set(["a.py", "b.ts", "README.md"])
        assert categories == {FileCategory.PYTHON, FileCategory.TYPESCRIPT}

    def test_empty(self) -> None:
        """Test an empty change-set has no categories."""
        assert classify_change_set([]) == frozenset()


class TestBuildChangeSet:
    """Tests for ChangeSet construction."""

    def test_deduplicates_preserving_order(self) -> None:
        """Test duplicates are dropped and order kept."""
        change_set = build_change_set(["b.py", "a.py", "b.py", ""], ChangeSource.STAGED)

        assert change_set.files == ("b.py", "a.py")
        assert change_set.is_staged
        assert change_set.context == "staged files"
        assert change_set.has(FileCategory.PYTHON)

    def test_tracked_context(self) -> None:
        """Test the context label for sampled files."""
        change_set = build_change_set(["a.py"], ChangeSource.TRACKED)
        assert change_set.context == "repository files"
        assert not change_set.is_staged


class TestResolveChangeSet:
    """Tests for resolving the change-set from git."""

    def test_prefers_staged_files(self, tmp_repo: Path, git) -> None:
        """Test staged files win over tracked files."""
        (tmp_repo / "app.py").write_text("x = 1\n")
        git("add", "app.py", cwd=tmp_repo)

        change_set = resolve_change_set(GitRepo(tmp_repo), limit=100)

        assert change_set.source is ChangeSource.STAGED
        assert change_set.files == ("app.py",)

    def test_falls_back_to_tracked(self, tmp_repo: Path) -> None:
        """Test the tracked sample is used when nothing is staged."""
        change_set = resolve_change_set(GitRepo(tmp_repo), limit=100)

        assert change_set.source is ChangeSource.TRACKED
        assert change_set.files == ("README.md",)

    def test_tracked_sample_is_bounded(self, tmp_repo: Path, git) -> None:
        """Test the fallback takes the first N tracked files in order."""
        for i in range(5):
            (tmp_repo / f"f{i}.txt").write_text("x\n")
        git("add", "-A", cwd=tmp_repo)
        git("commit", "-q", "-m", "files", cwd=tmp_repo)

        change_set = resolve_change_set(GitRepo(tmp_repo), limit=3)

        assert change_set.files == ("README.md", "f0.txt", "f1.txt")

    def test_empty_repository(self, empty_repo: Path) -> None:
        """Test an empty repository yields an empty change-set."""
        change_set = resolve_change_set(GitRepo(empty_repo), limit=100)

        assert len(change_set) == 0
        assert change_set.categories == frozenset()

    def test_deletion_only_commit_stays_staged(self, tmp_repo: Path, git) -> None:
        """Test staged deletions keep the staged source instead of sampling tracked files."""
        (tmp_repo / "old.txt").write_text("bye\n")
        (tmp_repo / "untouched.txt").write_text("keep  \n")
        git("add", ".", cwd=tmp_repo)
        git("commit", "-q", "-m", "files", cwd=tmp_repo)
        git("rm", "-q", "old.txt", cwd=tmp_repo)

        change_set = resolve_change_set(GitRepo(tmp_repo), limit=100)

        assert change_set.source is ChangeSource.STAGED
        assert change_set.files == ()
        assert change_set.deleted == ("old.txt",)
        assert not change_set.is_empty

    def test_deleted_paths_are_not_files(self, tmp_repo: Path, git) -> None:
        """Test a mixed commit lists only surviving paths as files."""
        git("rm", "-q", "README.md", cwd=tmp_repo)
        (tmp_repo / "app.py").write_text("x = 1\n")
        git("add", "app.py", cwd=tmp_repo)

        change_set = resolve_change_set(GitRepo(tmp_repo), limit=100)

        assert change_set.files == ("app.py",)
        assert change_set.deleted == ("README.md",)

    def test_non_ascii_path(self, tmp_repo: Path, git) -> None:
        """Test non-ASCII names come back verbatim and keep their category."""
        (tmp_repo / "configuração.yaml").write_text("a: 1\n")
        git("add", "configuração.yaml", cwd=tmp_repo)

        change_set = resolve_change_set(GitRepo(tmp_repo), limit=100)

        assert change_set.files == ("configuração.yaml",)
        assert FileCategory.YAML in change_set.categories
        assert (tmp_repo / change_set.files[0]).is_file()

    def test_paths_with_spaces(self, tmp_repo: Path, git) -> None:
        """Test leading and trailing spaces in names survive parsing."""
        (tmp_repo / "my notes.txt").write_text("x\n")
        (tmp_repo / " padded.py ").write_text("x = 1\n")
        git("add", ".", cwd=tmp_repo)

        change_set = resolve_change_set(GitRepo(tmp_repo), limit=100)

        assert set(change_set.files) == {"my notes.txt", " padded.py "}

    def test_tracked_non_ascii_path(self, tmp_repo: Path, git) -> None:
        """Test the tracked fallback returns unquoted names."""
        (tmp_repo / "naïve.py").write_text("x = 1\n")
        git("add", ".", cwd=tmp_repo)
        git("commit", "-q", "-m", "unicode", cwd=tmp_repo)

        change_set = resolve_change_set(GitRepo(tmp_repo), limit=100)

        assert change_set.source is ChangeSource.TRACKED
        assert "naïve.py" in change_set.files
        assert change_set.has(FileCategory.PYTHON)


class TestGitRepoPaths:
    """Tests for the git path queries."""

    def test_staged_changes_statuses(self, tmp_repo: Path, git) -> None:
        """Test each staged path carries its one-letter status."""
        (tmp_repo / "new.py").write_text("x = 1\n")
        (tmp_repo / "README.md").write_text("# Changed\n")
        git("add", ".", cwd=tmp_repo)

        changes = GitRepo(tmp_repo).staged_changes()

        assert sorted(changes) == [("A", "new.py"), ("M", "README.md")]

    def test_rename_is_delete_plus_add(self, tmp_repo: Path, git) -> None:
        """Test renames split into a deletion and an addition."""
        git("mv", "README.md", "GUIDE.md", cwd=tmp_repo)

        repo = GitRepo(tmp_repo)

        assert sorted(repo.staged_changes()) == [("A", "GUIDE.md"), ("D", "README.md")]
        assert repo.staged_files() == ["GUIDE.md"]

    def test_file_mode_non_ascii(self, tmp_repo: Path, git) -> None:
        """Test the index mode lookup works for non-ASCII names."""
        script = tmp_repo / "día.sh"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o755)
        git("add", "día.sh", cwd=tmp_repo)

        assert GitRepo(tmp_repo).file_mode("día.sh") == "100755"
