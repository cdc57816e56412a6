from extension_checker.path_matcher import PathMatcher, glob_to_regex


def test_default_excludes_always_active(tmp_path):
    matcher = PathMatcher(tmp_path)
    assert matcher.should_exclude("node_modules/lib/index.js")
    assert matcher.should_exclude("vendor/node_modules/x.js")
    assert matcher.should_exclude(".git/config")
    assert matcher.should_exclude("logs/debug.log")
    assert matcher.should_exclude(".DS_Store")
    assert not matcher.should_exclude("src/app.js")


def test_absolute_and_relative_paths_agree(tmp_path):
    matcher = PathMatcher(tmp_path, exclude=["dist/**", "*.min.js"])
    for rel in ("dist/bundle.js", "lib/jquery.min.js", "src/app.js"):
        assert matcher.should_exclude(rel) == matcher.should_exclude(tmp_path / rel)
        assert matcher.should_exclude(f"./{rel}") == matcher.should_exclude(rel)
    assert matcher.should_exclude(tmp_path / "dist" / "bundle.js")
    assert not matcher.should_exclude(tmp_path / "src" / "app.js")


def test_include_list_vetoes_everything_else(tmp_path):
    matcher = PathMatcher(tmp_path, include=["src/**"])
    assert matcher.should_exclude("other/file.js")
    assert not matcher.should_exclude("src/a.js")
    assert not matcher.should_exclude("src/deep/b.js")
    # include never re-adds an excluded file
    assert matcher.should_exclude("src/node_modules/x.js")


def test_include_does_not_prune_directories(tmp_path):
    matcher = PathMatcher(tmp_path, include=["src/**"])
    assert not matcher.should_exclude_directory(tmp_path / "other")


def test_default_patterns_cannot_be_removed(tmp_path):
    matcher = PathMatcher(tmp_path, exclude=["build/**"])
    assert matcher.remove_pattern("node_modules/**") is False
    assert matcher.should_exclude("node_modules/a.js")
    assert matcher.remove_pattern("build/**") is True
    assert not matcher.should_exclude("build/out.js")


def test_add_pattern_is_idempotent(tmp_path):
    matcher = PathMatcher(tmp_path)
    matcher.add_pattern("docs/**")
    matcher.add_pattern("docs/**")
    assert matcher.get_patterns().count("docs/**") == 1
    assert matcher.should_exclude("docs/readme.md")


def test_directory_and_file_exclude_patterns(tmp_path):
    matcher = PathMatcher(tmp_path, exclude_patterns={"directories": ["coverage"], "files": ["secrets.json"]})
    assert matcher.should_exclude("coverage/index.html")
    assert matcher.should_exclude_directory(tmp_path / "coverage")
    assert matcher.should_exclude("config/secrets.json")


def test_context_patterns_follow_active_context(tmp_path):
    patterns = {"byContext": {"test": ["**/*.spec.js"]}}
    matcher = PathMatcher(tmp_path, exclude_patterns=patterns, context="test")
    assert matcher.should_exclude("src/a.spec.js")
    matcher.set_context("default")
    assert not matcher.should_exclude("src/a.spec.js")
    matcher.set_context("test")
    assert matcher.should_exclude("src/a.spec.js")


def test_malformed_globs_never_raise(tmp_path):
    matcher = PathMatcher(tmp_path, exclude=["[", "src/[a-", ""])
    assert not matcher.should_exclude("src/app.js")


def test_glob_semantics():
    assert glob_to_regex("**/*.js").match("a.js")
    assert glob_to_regex("**/*.js").match("a/b/c.js")
    assert glob_to_regex("src/*.js").match("src/a.js")
    assert not glob_to_regex("src/*.js").match("src/x/a.js")
    assert glob_to_regex("file?.txt").match("file1.txt")
    assert not glob_to_regex("file?.txt").match("file10.txt")
    assert glob_to_regex("img/[abc].png").match("img/b.png")
    assert not glob_to_regex("img/[abc].png").match("img/d.png")


def test_wildcards_skip_dotfiles_unless_enabled():
    assert not glob_to_regex("*.js").match(".eslintrc.js")
    assert glob_to_regex("*.js", dot=True).match(".eslintrc.js")
    assert glob_to_regex(".eslintrc.js").match(".eslintrc.js")


def test_walk_prunes_excluded_directories(tmp_path):
    for rel in ("src/app.js", "node_modules/pkg/index.js", "dist/out.js", "notes.log"):
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x")
    matcher = PathMatcher(tmp_path, exclude=["dist/**"])
    found = sorted(p.relative_to(tmp_path).as_posix() for p in matcher.walk())
    assert found == ["src/app.js"]


def test_tool_path_predicate_excludes_own_files(tmp_path):
    tool_dir = tmp_path.resolve() / "checker"
    matcher = PathMatcher(tmp_path, is_tool_path=lambda p: p.startswith(str(tool_dir)))
    assert matcher.should_exclude("checker/rules.js")
    assert not matcher.should_exclude("src/rules.js")


def test_stats_count_exclusions(tmp_path):
    matcher = PathMatcher(tmp_path)
    stats = matcher.get_stats(["a.js", "b.log", "node_modules/c.js"])
    assert stats["totalFiles"] == 3
    assert stats["includedFiles"] == 1
    assert stats["excludedFiles"] == 2
    assert stats["excludedByPattern"]["*.log"] == 1
