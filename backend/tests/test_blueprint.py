"""Tests for Master Blueprint section, function and bucket extraction."""
from app.blueprint import (
    BucketSpec,
    RepoFile,
    extract_function_files,
    extract_section,
    parse_blueprint,
    parse_bucket_specs,
)


def test_parse_full_blueprint(master_blueprint):
    sections = parse_blueprint(master_blueprint)
    assert sections.overview == "A habit tracker backend."
    assert sections.database_schema == "CREATE TABLE habits (id uuid primary key);"
    assert sections.rls_policies == "ALTER TABLE habits ENABLE ROW LEVEL SECURITY;"
    assert sections.storage_buckets.startswith("[")
    assert "// api/habits.js" in sections.serverless_functions
    assert sections.prompt_library == "Build the habits screen."


def test_missing_section_is_empty_and_others_still_parse():
    text = "## SECTION 2: DATABASE SCHEMA\nCREATE TABLE t();\n## SECTION 6: PROMPT LIBRARY\nprompts"
    sections = parse_blueprint(text)
    assert sections.overview == ""
    assert sections.rls_policies == ""
    assert sections.database_schema == "CREATE TABLE t();"
    assert sections.prompt_library == "prompts"


def test_empty_text_yields_all_empty_sections():
    sections = parse_blueprint("")
    assert all(value == "" for value in vars(sections).values())


def test_extract_section_stops_at_next_marker():
    text = "## SECTION 3: RLS POLICIES\npolicy a\n## SECTION 4: STORAGE BUCKETS\n[]"
    assert extract_section(text, 3, "RLS POLICIES") == "policy a"


def test_extract_function_files():
    text = (
        "```javascript\n// api/users.js\nexport default () => 1;\n```\n"
        "```js\n// api/items.js\nexport default () => 2;\n```\n"
        "```\n// api/bare.js\nmodule.exports = 3;\n```\n"
        "```js\nconsole.log('no header');\n```\n"
    )
    assert extract_function_files(text) == [
        RepoFile(path="api/users.js", content="export default () => 1;"),
        RepoFile(path="api/items.js", content="export default () => 2;"),
        RepoFile(path="api/bare.js", content="module.exports = 3;"),
    ]


def test_extract_function_files_without_blocks():
    assert extract_function_files("") == []
    assert extract_function_files("just prose") == []


def test_parse_bucket_specs():
    specs = parse_bucket_specs('[{"name": "avatars", "public": true}, {"name": "exports"}]')
    assert specs == [BucketSpec("avatars", True), BucketSpec("exports", False)]


def test_parse_bucket_specs_unwraps_json_fence():
    assert parse_bucket_specs('```json\n[{"name": "media"}]\n```') == [BucketSpec("media", False)]


def test_parse_bucket_specs_empty_input():
    assert parse_bucket_specs("") == []
    assert parse_bucket_specs("[]") == []


def test_parse_bucket_specs_invalid_json_is_none():
    assert parse_bucket_specs("avatars, exports") is None


def test_parse_bucket_specs_non_array_is_none():
    assert parse_bucket_specs('{"name": "avatars"}') is None


def test_parse_bucket_specs_skips_entries_without_name():
    specs = parse_bucket_specs('[{"public": true}, "loose", {"name": ""}, {"name": "ok"}]')
    assert specs == [BucketSpec("ok", False)]
