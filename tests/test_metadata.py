from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from commitbook import metadata
from commitbook.models import Commit, Frontmatter


def _commits(*stamps: datetime) -> list[Commit]:
    return [
        Commit(hash=f"{index:040x}", message=f"commit {index}", order=index, timestamp=stamp)
        for index, stamp in enumerate(stamps)
    ]


def test_parse_frontmatter_given_quoted_title_when_parsed_then_title_and_body_are_split() -> None:
    # Given
    readme = '---\ntitle: "Foo"\n---\n# Foo\nBody text'

    # When
    frontmatter = metadata.parse_frontmatter(readme)

    # Then
    assert frontmatter.found is True
    assert frontmatter.title == "Foo"
    assert metadata.readme_body(frontmatter) == "Body text"


def test_parse_frontmatter_given_leading_blank_lines_when_parsed_then_block_is_recognized() -> None:
    # Given
    readme = "\n\n  \n---\ntitle: 'Weekend Agent'\ndescription: Build it in two days\ndocNumber: 42\nauthor: ignored\n---\n\nIntro\n"

    # When
    frontmatter = metadata.parse_frontmatter(readme)

    # Then
    assert frontmatter.title == "Weekend Agent"
    assert frontmatter.description == "Build it in two days"
    assert frontmatter.doc_number == "42"
    assert frontmatter.body == "Intro"


def test_parse_frontmatter_given_unterminated_block_when_parsed_then_body_is_unmodified() -> None:
    # Given
    readme = "---\ntitle: Foo\n# Foo\nBody"

    # When
    frontmatter = metadata.parse_frontmatter(readme)

    # Then
    assert frontmatter.found is False
    assert frontmatter.title is None
    assert frontmatter.body == readme


def test_parse_frontmatter_given_malformed_yaml_when_parsed_then_skipped_with_warning(caplog) -> None:
    # Given
    readme = "---\n: [broken\n  - {\n---\nBody"

    # When
    with caplog.at_level(logging.WARNING):
        frontmatter = metadata.parse_frontmatter(readme)

    # Then
    assert frontmatter.found is False
    assert frontmatter.body == readme
    assert "malformed frontmatter" in caplog.text


def test_parse_frontmatter_given_unquoted_colon_in_title_when_parsed_then_lines_are_read_verbatim() -> None:
    # Given
    readme = "---\ntitle: Weekend Warrior: Build an Agent\ndocNumber: 007\n---\n# X\nBody"

    # When
    frontmatter = metadata.parse_frontmatter(readme)

    # Then
    assert frontmatter.found is True
    assert frontmatter.title == "Weekend Warrior: Build an Agent"
    assert frontmatter.doc_number == "007"
    assert frontmatter.body == "# X\nBody"
    assert metadata.readme_body(frontmatter) == "Body"


def test_parse_frontmatter_given_scalars_yaml_would_coerce_when_parsed_then_values_stay_as_written() -> None:
    # Given
    readme = "---\ntitle: yes\ndescription: 1.50\ndocNumber: 007\n---\nBody"

    # When
    frontmatter = metadata.parse_frontmatter(readme)

    # Then
    assert frontmatter.title == "yes"
    assert frontmatter.description == "1.50"
    assert frontmatter.doc_number == "007"


def test_parse_frontmatter_given_crlf_line_endings_when_parsed_then_title_and_body_are_split() -> None:
    # Given
    readme = '---\r\ntitle: "Foo"\r\n---\r\n# Foo\r\nBody text'

    # When
    frontmatter = metadata.parse_frontmatter(readme)

    # Then
    assert frontmatter.found is True
    assert frontmatter.title == "Foo"
    assert metadata.readme_body(frontmatter) == "Body text"


def test_parse_frontmatter_given_list_block_when_parsed_then_treated_as_absent() -> None:
    # Given
    readme = "---\n- one\n- two\n---\nBody"

    # When
    frontmatter = metadata.parse_frontmatter(readme)

    # Then
    assert frontmatter.found is False
    assert frontmatter.body == readme


def test_strip_leading_h1_given_heading_not_first_when_stripped_then_body_is_kept() -> None:
    # Given
    body = "Intro\n# Heading\n"

    # When
    stripped = metadata.strip_leading_h1(body)

    # Then
    assert stripped == body
    assert metadata.strip_leading_h1("# Only") == ""


def test_derive_title_and_doc_number_given_repo_name_when_derived_then_expected_values_returned() -> None:
    # Given
    repo_name = "weekend-coding_agent"

    # When
    title = metadata.derive_title(repo_name)
    doc_number = metadata.derive_doc_number(title, "2024")

    # Then
    assert title == "Weekend Coding Agent"
    assert doc_number == "WCA-2024"


def test_repo_identity_given_remote_urls_when_resolved_then_name_is_taken_from_url() -> None:
    # Given
    sources = [
        "https://github.com/user/weekend-coding-agent.git",
        "git@github.com:user/weekend-coding-agent.git",
        "https://example.com/team/weekend-coding-agent",
    ]

    # When
    identities = [metadata.repo_identity(url, "fallback") for url in sources]

    # Then
    assert [name for name, _ in identities] == ["weekend-coding-agent"] * 3
    assert identities[1][1] == "git@github.com:user/weekend-coding-agent.git"
    assert metadata.repo_identity(None, "local-dir") == ("local-dir", "")


def test_commit_date_range_given_commits_when_computed_then_uses_author_local_dates() -> None:
    # Given
    late_evening = datetime(2023, 12, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    commits = _commits(late_evening, datetime(2024, 2, 2, 8, 0, tzinfo=timezone.utc))

    # When
    start, last = metadata.commit_date_range(commits)

    # Then
    assert (start, last) == ("2023-12-31", "2024-02-02")


def test_resolve_project_metadata_given_partial_frontmatter_when_resolved_then_fields_fall_back_independently() -> None:
    # Given
    frontmatter = Frontmatter(description="From README", found=True)
    commits = _commits(datetime(2022, 5, 1, tzinfo=timezone.utc), datetime(2022, 6, 1, tzinfo=timezone.utc))

    # When
    project = metadata.resolve_project_metadata(
        frontmatter=frontmatter,
        repo_name="tiny-http-server",
        repo_path="/src/tiny-http-server",
        repo_url="",
        commits=commits,
        steps=[],
    )

    # Then
    assert project.title == "Tiny Http Server"
    assert project.description == "From README"
    assert project.doc_number == "THS-2022"
    assert project.start_date == "2022-05-01"
    assert project.last_date == "2022-06-01"
    dumped = project.model_dump(by_alias=True)
    assert {"repoName", "repoPath", "repoUrl", "startDate", "lastDate", "docNumber", "steps"} <= set(dumped)
