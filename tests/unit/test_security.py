"""Tests for the security check."""

from pathlib import Path

from hookgate.checks.security import SecurityChecker, SeverityTally, find_secret_lines
from hookgate.constants import CheckStatus, Severity


class TestFindSecretLines:
    """Tests for secret assignment detection."""

    def test_masks_values(self) -> None:
        """Test hits are reported with the value masked."""
        assert find_secret_lines("API_KEY=abcdef123456\n") == ["API_KEY=***"]

    def test_skips_placeholders(self) -> None:
        """Test obvious placeholders are ignored."""
        text = "password=changeme\ntoken=<your-token>\nsecret=xxx\n"
        assert find_secret_lines(text) == []

    def test_limit(self) -> None:
        """Test at most ``limit`` hits are returned."""
        text = "\n".join(f"key{i}=value{i}" for i in range(10))
        assert len(find_secret_lines(text, limit=3)) == 3

    def test_empty_value_ignored(self) -> None:
        """Test assignments without a value are ignored."""
        assert find_secret_lines("password=\n") == []


class TestSeverityTally:
    """Tests for SeverityTally."""

    def test_add(self) -> None:
        """Test counts accumulate per severity."""
        tally = SeverityTally()
        tally.add(Severity.HIGH)
        tally.add(Severity.MEDIUM, 2)
        tally.add(Severity.LOW)

        assert (tally.high, tally.medium, tally.low) == (1, 2, 1)


class TestSecurityChecker:
    """Tests for SecurityChecker.run without external scanners."""

    def test_secret_in_config_fails(self, tmp_repo: Path, make_context, git) -> None:
        """Test a real-looking secret in a config file fails the check."""
        (tmp_repo / "settings.yaml").write_text("db_password = hunter2hunter2\n")
        git("add", "settings.yaml", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["settings.yaml"])

        outcome = SecurityChecker().run(ctx)

        assert outcome.status is CheckStatus.FAILED
        assert "Potential secrets found in settings.yaml" in ctx.log.text()
        assert "hunter2" not in ctx.log.text()

    def test_secret_passes_when_high_not_fatal(self, tmp_repo: Path, make_context, git) -> None:
        """Test high findings are reported but not fatal when disabled."""
        (tmp_repo / "settings.yaml").write_text("db_password = hunter2hunter2\n")
        git("add", "settings.yaml", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["settings.yaml"], fail_on_high_severity=False)

        outcome = SecurityChecker().run(ctx)

        assert outcome.status is CheckStatus.PASSED
        assert "1 high severity" in outcome.notes

    def test_low_findings_only(self, tmp_repo: Path, make_context) -> None:
        """Test missing LICENSE and SECURITY.md are low severity and pass."""
        ctx = make_context(tmp_repo, ["README.md"])

        outcome = SecurityChecker().run(ctx)

        assert outcome.status is CheckStatus.PASSED
        assert outcome.notes == ["2 low severity"]
        assert "No LICENSE file found" in ctx.log.text()

    def test_clean_repository(self, tmp_repo: Path, make_context, git) -> None:
        """Test a repository with policies and no findings passes cleanly."""
        (tmp_repo / "LICENSE").write_text("MIT License\n")
        (tmp_repo / "SECURITY.md").write_text("# Security\n")
        git("add", ".", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["LICENSE", "SECURITY.md"])

        outcome = SecurityChecker().run(ctx)

        assert outcome.status is CheckStatus.PASSED
        assert "No significant security issues found" in ctx.log.text()

    def test_medium_severity_flag(self, tmp_repo: Path, make_context, git, monkeypatch) -> None:
        """Test large tracked files fail only under FAIL_ON_MEDIUM_SEVERITY."""
        monkeypatch.setattr("hookgate.checks.security.LARGE_FILE_BYTES", 10)
        (tmp_repo / "LICENSE").write_text("MIT\n")
        (tmp_repo / "SECURITY.md").write_text("x\n")
        (tmp_repo / "dump.txt").write_text("0123456789abcdef\n")
        git("add", ".", cwd=tmp_repo)

        lenient = SecurityChecker().run(make_context(tmp_repo, ["dump.txt"]))
        strict = SecurityChecker().run(make_context(tmp_repo, ["dump.txt"], fail_on_medium_severity=True))

        assert lenient.status is CheckStatus.PASSED
        assert strict.status is CheckStatus.FAILED

    def test_missing_scanners_noted(self, tmp_repo: Path, make_context, git) -> None:
        """Test absent scanners are logged as skipped, not failed."""
        (tmp_repo / "app.py").write_text("print('hi')\n")
        git("add", "app.py", cwd=tmp_repo)
        ctx = make_context(tmp_repo, ["app.py"])

        outcome = SecurityChecker().run(ctx)

        assert outcome.status is CheckStatus.PASSED
        assert "bandit not available" in ctx.log.text()
