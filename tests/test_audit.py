"""Tests for the protection audit."""

import json
import tempfile
from pathlib import Path

import pytest

from gasguard.audit import AuditSession, display_identifier, is_protected, read_marker
from gasguard.exceptions import InvalidSelectionError, MarkerParseError
from gasguard.models import RuleSource, SourceKind

LONG_SCRIPT_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz0123456789"


def make_project(base: Path, name: str, marker: str | None = None) -> Path:
    """Create a clasp project with the given raw marker content."""
    project = base / name
    project.mkdir()
    if marker is None:
        marker = json.dumps({"scriptId": LONG_SCRIPT_ID, "rootDir": "./src"})
    (project / ".clasp.json").write_text(marker, encoding="utf-8")
    return project


class TestMarker:
    """Test marker parsing and identifier display."""

    @pytest.fixture
    def base(self) -> Path:
        """Create a temporary base directory."""
        with tempfile.TemporaryDirectory() as temp_dir:
            yield Path(temp_dir).resolve()

    def test_read_marker(self, base: Path) -> None:
        """Test parsing a valid marker."""
        project = make_project(base, "sheet")
        assert read_marker(project)["rootDir"] == "./src"

    @pytest.mark.parametrize("marker", ["{not json", "[1, 2]", ""])
    def test_read_marker_invalid(self, base: Path, marker: str) -> None:
        """Test that malformed markers raise MarkerParseError."""
        project = make_project(base, "broken", marker)
        with pytest.raises(MarkerParseError):
            read_marker(project)

    def test_identifier_is_truncated(self, base: Path) -> None:
        """Test that long script ids are cut to 15 characters plus ellipsis."""
        project = make_project(base, "sheet")
        assert display_identifier(project) == LONG_SCRIPT_ID[:15] + "..."

    def test_short_identifier_kept(self, base: Path) -> None:
        """Test that ids within the display length are shown whole."""
        project = make_project(base, "sheet", json.dumps({"scriptId": "short-id"}))
        assert display_identifier(project) == "short-id"

    def test_missing_identifier(self, base: Path) -> None:
        """Test that a marker without scriptId shows N/A."""
        project = make_project(base, "sheet", json.dumps({"rootDir": "src"}))
        assert display_identifier(project) == "N/A"

    def test_unparseable_identifier(self, base: Path) -> None:
        """Test that a malformed marker shows unknown."""
        project = make_project(base, "sheet", "{oops")
        assert display_identifier(project) == "unknown"

    @pytest.mark.parametrize("filename", [".cursorrules", ".clinerules"])
    def test_either_rule_file_protects(self, base: Path, filename: str) -> None:
        """Test that one rule-surface file is enough."""
        project = make_project(base, "sheet")
        assert not is_protected(project)

        (project / filename).write_text("rules")

        assert is_protected(project)


class TestAuditSession:
    """Test report building, preview and remediation."""

    @pytest.fixture
    def base(self) -> Path:
        """Create a base with one protected and two unprotected projects."""
        with tempfile.TemporaryDirectory() as temp_dir:
            base = Path(temp_dir).resolve()
            make_project(base, "alpha")
            guarded = make_project(base, "beta")
            (guarded / ".clinerules").write_text("old rules\n", encoding="utf-8")
            make_project(base, "gamma", "{broken")
            (base / "not-a-project").mkdir()
            yield base

    @pytest.fixture
    def source(self) -> RuleSource:
        """Create the active rule source."""
        return RuleSource(
            kind=SourceKind.TEMPLATE,
            display_name="Current",
            content="# Current\n- rules\n",
        )

    def test_scan_builds_report(self, base: Path) -> None:
        """Test report contents and order."""
        session = AuditSession.scan(base)

        assert [p.name for p in session.projects] == ["alpha", "beta", "gamma"]
        assert [p.index for p in session.projects] == [1, 2, 3]
        assert [p.protected for p in session.projects] == [False, True, False]
        assert session.projects[0].identifier == LONG_SCRIPT_ID[:15] + "..."
        assert session.projects[2].identifier == "unknown"
        assert session.projects[0].path == base / "alpha"

    def test_scan_excludes_tool_home(self, base: Path) -> None:
        """Test that the excluded directory is not reported."""
        session = AuditSession.scan(base, exclude=base / "alpha")
        assert [p.name for p in session.projects] == ["beta", "gamma"]

    def test_scan_missing_base(self, base: Path) -> None:
        """Test that a missing base gives an empty report."""
        session = AuditSession.scan(base / "missing")
        assert session.projects == []
        assert session.unprotected == []

    def test_preview_protected(self, base: Path) -> None:
        """Test previewing a project's rule file."""
        session = AuditSession.scan(base)
        assert session.preview(2) == "old rules\n"

    def test_preview_falls_back_to_cursor_rules(self, base: Path) -> None:
        """Test that .cursorrules is shown when .clinerules is missing."""
        (base / "alpha" / ".cursorrules").write_text("cursor only\n", encoding="utf-8")
        session = AuditSession.scan(base)

        assert session.preview(1) == "cursor only\n"

    def test_preview_unprotected(self, base: Path) -> None:
        """Test that a project without rules previews as None."""
        session = AuditSession.scan(base)

        assert session.preview(1) is None
        assert session.projects[0].protected is False

    @pytest.mark.parametrize("index", [0, 4, -1])
    def test_preview_out_of_range(self, base: Path, index: int) -> None:
        """Test that bad indexes raise InvalidSelectionError."""
        session = AuditSession.scan(base)
        with pytest.raises(InvalidSelectionError):
            session.preview(index)

    def test_remediate_all(self, base: Path, source: RuleSource) -> None:
        """Test that every unprotected project gets the active rules."""
        session = AuditSession.scan(base)

        report = session.remediate_all(source)

        assert report.succeeded
        assert [p.name for p in report.repaired] == ["alpha", "gamma"]
        assert all(p.protected for p in session.projects)
        for name in ("alpha", "gamma"):
            for filename in (".cursorrules", ".clinerules"):
                assert (base / name / filename).read_text(encoding="utf-8") == source.content
        assert (base / "beta" / ".clinerules").read_text(encoding="utf-8") == "old rules\n"

    def test_remediate_nothing_to_do(self, base: Path, source: RuleSource) -> None:
        """Test that a second remediation touches nothing."""
        session = AuditSession.scan(base)
        session.remediate_all(source)

        report = session.remediate_all(source)

        assert report.repaired == []
        assert report.failed == []

    def test_remediate_does_not_rescan(self, base: Path, source: RuleSource) -> None:
        """Test that the in-memory report is not refreshed from disk."""
        session = AuditSession.scan(base)
        session.remediate_all(source)
        (base / "alpha" / ".cursorrules").unlink()
        (base / "alpha" / ".clinerules").unlink()
        (base / "delta").mkdir()
        (base / "delta" / ".clasp.json").write_text("{}")

        assert all(p.protected for p in session.projects)
        assert len(session.projects) == 3
        assert len(AuditSession.scan(base).unprotected) == 2

    def test_remediate_skips_failures(self, base: Path, source: RuleSource) -> None:
        """Test that a failing project is reported and the batch continues."""
        (base / "alpha" / ".cursorrules").mkdir()
        session = AuditSession.scan(base)

        report = session.remediate_all(source)

        assert [f.path.name for f in report.failed] == ["alpha"]
        assert [p.name for p in report.repaired] == ["gamma"]
        assert not report.succeeded
        assert session.projects[0].protected is False
        assert session.projects[2].protected is True

    def test_preview_undecodable_rules(self, base: Path) -> None:
        """Test that a rule file which is not UTF-8 still previews."""
        (base / "beta" / ".clinerules").write_bytes(b"caf\xe9\n")
        session = AuditSession.scan(base)

        assert session.preview(2) == "caf\ufffd\n"

    def test_remediate_undecodable_ignore_list(self, base: Path, source: RuleSource) -> None:
        """Test that a non-UTF-8 .gitignore does not abort remediation."""
        original = b"# caf\xe9\nbuild/\n"
        (base / "alpha" / ".gitignore").write_bytes(original)
        session = AuditSession.scan(base)

        report = session.remediate_all(source)

        assert [p.name for p in report.repaired] == ["alpha", "gamma"]
        assert report.succeeded
        assert (base / "gamma" / ".clinerules").read_text(encoding="utf-8") == source.content
        assert (base / "alpha" / ".gitignore").read_bytes().startswith(original)

    def test_remediate_isolates_encoding_errors(self, base: Path) -> None:
        """Test that content which cannot be encoded fails each project in turn."""
        unencodable = RuleSource(
            kind=SourceKind.FILE,
            display_name="Broken",
            content="caf\udce9\n",
        )
        session = AuditSession.scan(base)

        report = session.remediate_all(unencodable)

        assert [f.path.name for f in report.failed] == ["alpha", "gamma"]
        assert report.repaired == []
        assert len(session.unprotected) == 2
