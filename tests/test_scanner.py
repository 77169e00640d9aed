import json
from pathlib import Path

from envscan.core.config import ScanConfig
from envscan.core.parser import ESPRIMA_STRATEGIES
from envscan.core.scanner import (
    collect_source_files,
    find_candidates,
    format_env_var,
    scan_code_files,
    scan_files,
)
from envscan.core.scanner.models import SiteKind


def names(result):
    return [record.identity for record in result.records]


def test_direct_accesses(write_tree):
    root = write_tree({"index.js": 'const a = process.env.FOO;\nconst b = process.env["BAR"];\n'})
    result = scan_code_files(root)
    assert names(result) == ["BAR", "FOO"]
    assert all(record.name is not None for record in result.records)


def test_each_access_yields_one_record(write_tree):
    root = write_tree({"index.js": "process.env.FOO;\nprocess.env.FOO;\nprocess.env['FOO'];\n"})
    result = scan_code_files(root)
    assert names(result) == ["FOO"]
    assert result.records[0].reference_span.start_line == 1


def test_destructured_env_alias(write_tree):
    root = write_tree({
        "index.js": (
            "const { env } = process;\n"
            "const port = env.PORT;\n"
            "const host = env['HOST'];\n"
            "const { API_KEY, SECRET: secret } = env;\n"
        ),
    })
    assert names(scan_code_files(root)) == ["API_KEY", "HOST", "PORT", "SECRET"]


def test_direct_env_alias(write_tree):
    root = write_tree({"index.js": "const env = process.env;\nenv.TOKEN;\n"})
    assert names(scan_code_files(root)) == ["TOKEN"]


def test_alias_discovered_after_use(write_tree):
    root = write_tree({
        "index.js": "function port() { return env.PORT; }\nconst { env } = process;\n",
    })
    assert names(scan_code_files(root)) == ["PORT"]


def test_env_not_from_process_is_ignored(write_tree):
    root = write_tree({
        "index.js": "const env = loadConfig();\nenv.PORT;\nconst { HOST } = env;\n",
    })
    assert names(scan_code_files(root)) == []


def test_alias_list_is_file_scoped(write_tree):
    root = write_tree({
        "a.js": "const { env } = process;\nenv.FROM_A;\n",
        "b.js": "const env = {};\nenv.FROM_B;\n",
    })
    assert names(scan_code_files(root)) == ["FROM_A"]


def test_destructuring_process_env(write_tree):
    root = write_tree({"index.js": "const { DB_HOST, DB_PORT = '5432' } = process.env;\n"})
    assert names(scan_code_files(root)) == ["DB_HOST", "DB_PORT"]


def test_deduplicates_across_files_keeping_first(write_tree):
    root = write_tree({
        "a.js": "process.env.FOO;\n",
        "b.js": "\n\nprocess.env.FOO;\n",
    })
    result = scan_code_files(root)
    assert names(result) == ["FOO"]
    assert result.records[0].reference_file.name == "a.js"


def test_sorted_by_identity(write_tree):
    root = write_tree({"index.js": "process.env.B_VAR;\nprocess.env.A_VAR;\n"})
    assert names(scan_code_files(root)) == ["A_VAR", "B_VAR"]


def test_computed_fallback_for_module_reference(write_tree):
    root = write_tree({
        "someObj.js": "module.exports = { someKey: compute() };\n",
        "index.js": 'const someObj = require("./someObj");\nprocess.env[someObj.someKey];\n',
    })
    [record] = scan_code_files(root).records
    assert record.name is None
    assert record.computed == "someObj.someKey"
    assert [site.kind for site in record.initialized] == [SiteKind.MODULE_REFERENCE]


def test_literal_chain_substitutes_name(write_tree):
    root = write_tree({"index.js": 'const KEY = "FOO";\nconst val = process.env[KEY];\n'})
    [record] = scan_code_files(root).records
    assert record.name == "FOO"
    assert record.initialized[0].kind is SiteKind.LITERAL_VALUE
    assert record.initialized[0].value == "FOO"


def test_follow_modules(write_tree):
    root = write_tree({
        "config.js": 'exports.KEY = "FOO";\n',
        "index.js": 'const config = require("./config");\nprocess.env[config.KEY];\n',
    })
    [plain] = scan_code_files(root).records
    assert plain.computed == "config.KEY"
    [followed] = scan_code_files(root, ScanConfig(follow_modules=True)).records
    assert followed.name == "FOO"


def test_non_path_expression_uses_source_text(write_tree):
    root = write_tree({"index.js": 'process.env["APP_" + suffix];\n'})
    [record] = scan_code_files(root).records
    assert record.computed == '"APP_" + suffix'
    assert record.initialized == []


def test_file_without_accesses_contributes_nothing(write_tree):
    root = write_tree({
        "empty.js": "const x = 1;\n",
        "index.js": "process.env.ONLY;\n",
    })
    result = scan_code_files(root)
    assert names(result) == ["ONLY"]
    assert result.files_scanned == 2


def test_unparsable_file_is_skipped(write_tree):
    root = write_tree({
        "broken.js": "const x = {;\n}}}\n",
        "index.js": "process.env.STILL_HERE;\n",
    })
    result = scan_code_files(root, ScanConfig(parse_strategies=ESPRIMA_STRATEGIES))
    assert names(result) == ["STILL_HERE"]
    assert [skipped.path.name for skipped in result.skipped_files] == ["broken.js"]
    assert result.skipped_files[0].reason == "unparsable"


def test_unreadable_file_is_skipped(write_tree):
    root = write_tree({"index.js": "process.env.OK;\n"})
    (root / "latin1.js").write_bytes(b"process.env.\xff;\n")
    result = scan_code_files(root)
    assert names(result) == ["OK"]
    assert [skipped.path.name for skipped in result.skipped_files] == ["latin1.js"]


def test_collect_source_files(write_tree):
    root = write_tree({
        "a.js": "",
        "b.jsx": "",
        "c.mjs": "",
        "d.ts": "",
        "notes.txt": "",
        "node_modules/pkg/index.js": "",
        "src/e.js": "",
    })
    (root / "folder.js").mkdir()
    files = [path.relative_to(root).as_posix() for path in collect_source_files(root)]
    assert files == ["a.js", "b.jsx", "c.mjs", "src/e.js"]
    everything = collect_source_files(root, ScanConfig(respect_gitignore=False))
    assert root / "node_modules" / "pkg" / "index.js" in everything


def test_on_file_progress_callback(write_tree):
    root = write_tree({"a.js": "", "src/b.js": ""})
    seen = []
    scan_code_files(root, on_file=seen.append)
    assert seen == ["a.js", "src/b.js"]


def test_scan_files_with_explicit_paths(write_tree):
    root = write_tree({"a.js": "process.env.A;\n", "b.js": "process.env.B;\n"})
    result = scan_files([root / "b.js"], root)
    assert names(result) == ["B"]


def test_candidates_in_source_order(parse_unit):
    unit = parse_unit("process.env.Z;\nconst { env } = process;\nenv.Y;\nprocess.env.X;\n")
    keys = [candidate.key.name for candidate in find_candidates(unit)]
    assert keys == ["Z", "Y", "X"]


def test_json_output_shape(write_tree):
    root = write_tree({"src/index.js": 'const KEY = "FOO";\nprocess.env[KEY];\nprocess.env[cfg.OTHER];\n'})
    data = json.loads(scan_code_files(root).to_json())
    assert data == [
        {
            "type": "EnvironmentVariable",
            "name": "FOO",
            "reference": {
                "filename": "src/index.js",
                "loc": {"start": {"line": 2, "column": 0}, "end": {"line": 2, "column": 16}},
            },
            "initialized": [
                {
                    "filename": "src/index.js",
                    "loc": {"start": {"line": 1, "column": 12}, "end": {"line": 1, "column": 17}},
                    "value": "FOO",
                },
            ],
        },
        {
            "type": "EnvironmentVariable",
            "computed": "cfg.OTHER",
            "reference": {
                "filename": "src/index.js",
                "loc": {"start": {"line": 3, "column": 0}, "end": {"line": 3, "column": 22}},
            },
        },
    ]


def test_absolute_paths_in_output(write_tree):
    root = write_tree({"index.js": "process.env.A;\n"})
    [entry] = json.loads(scan_code_files(root).to_json(relative_paths=False))
    assert Path(entry["reference"]["filename"]).is_absolute()


def test_format_env_var(write_tree):
    root = write_tree({"index.js": "\nprocess.env[key];\n"})
    [record] = scan_code_files(root).records
    assert format_env_var(record, root.resolve()) == "index.js:2:0: [key]"


def test_modern_syntax_files_are_scanned(write_tree):
    root = write_tree({
        "chain.js": "const a = process.env.FOO;\nconst b = obj?.x ?? 1;\n",
        "fields.js": "class A { x = process.env.BAR }\n",
        "spread.js": "function f() { return {...process.env, A: process.env.OBJSPREAD}; }\n",
        "App.jsx": (
            "const props = { ...defaults, api: process.env.API_URL };\n"
            "export const App = () => <Widget {...props} title={process.env.TITLE} />;\n"
        ),
    })
    result = scan_code_files(root)
    assert names(result) == ["API_URL", "BAR", "FOO", "OBJSPREAD", "TITLE"]
    assert result.skipped_files == []


def test_modern_syntax_keeps_aliases_and_resolution(write_tree):
    root = write_tree({"index.js": (
        "const { env } = process;\n"
        'const KEY = "RESOLVED";\n'
        "const { DB_URL, PORT = 3000 } = process.env;\n"
        "const value = process.env[KEY] ?? env.ALIASED;\n"
    )})
    result = scan_code_files(root)
    assert names(result) == ["ALIASED", "DB_URL", "PORT", "RESOLVED"]
    resolved = next(r for r in result.records if r.name == "RESOLVED")
    assert resolved.reference_span.start_line == 4
    assert [site.value for site in resolved.initialized] == ["RESOLVED"]


def test_flow_annotated_file_is_scanned(write_tree):
    root = write_tree({"index.js": (
        "// @flow\n"
        'import type { Config } from "./types";\n'
        "function f(x: string): number {\n"
        "  return process.env.FLOW;\n"
        "}\n"
    )})
    result = scan_code_files(root)
    assert names(result) == ["FLOW"]
    assert result.records[0].reference_span.start_line == 4


def test_file_with_syntax_errors_is_scanned_loosely(write_tree):
    root = write_tree({"broken.js": "const a = process.env.BEFORE;\n}}}\n"})
    result = scan_code_files(root)
    assert names(result) == ["BEFORE"]
    assert result.skipped_files == []
