from gitlab_ai_reviewer.domains.review.filters import filter_reviewable, normalize_diffs


def test_filter_reviewable_drops_deleted_ignored_and_pathless_entries() -> None:
    changes = [
        {"new_path": "src/a.py", "diff": "+a"},
        {"new_path": "package-lock.json", "diff": "+{}"},
        {"new_path": "README.md", "diff": "+doc"},
        {"new_path": "yarn.lock", "diff": "+x"},
        {"new_path": "logo.png", "diff": ""},
        {"new_path": "src/gone.py", "deleted_file": True, "diff": "-x"},
        {"diff": "+no path"},
        {"old_path": "src/b.go", "diff": "+b"},
        {"new_path": "icon.svg", "diff": ""},
        {"new_path": "photo.jpg", "diff": ""},
        {"new_path": "src/c.ts", "diff": "+c"},
    ]

    result = filter_reviewable(changes)

    assert [change.get("new_path") or change.get("old_path") for change in result] == [
        "src/a.py",
        "src/b.go",
        "src/c.ts",
    ]


def test_normalize_diffs_keeps_only_diff_record_fields() -> None:
    compare_entry = {
        "old_path": "a.py",
        "new_path": "b.py",
        "a_mode": "100644",
        "b_mode": "100644",
        "diff": "@@ -1 +1 @@\n-x\n+y\n",
        "renamed_file": True,
    }
    changes_entry = {
        "old_path": "c.py",
        "new_path": "c.py",
        "diff": "+z",
        "new_file": False,
        "deleted_file": False,
        "renamed_file": False,
        "generated_file": False,
    }

    result = normalize_diffs([compare_entry, changes_entry])

    assert result == [
        {
            "old_path": "a.py",
            "new_path": "b.py",
            "diff": "@@ -1 +1 @@\n-x\n+y\n",
            "new_file": False,
            "deleted_file": False,
            "renamed_file": True,
        },
        {
            "old_path": "c.py",
            "new_path": "c.py",
            "diff": "+z",
            "new_file": False,
            "deleted_file": False,
            "renamed_file": False,
        },
    ]


def test_normalize_then_filter_drops_entries_without_paths() -> None:
    assert filter_reviewable(normalize_diffs([{"diff": "+x"}])) == []
