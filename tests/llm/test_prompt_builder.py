import unittest

from commit_inference.analysis.diff_model import ChangeAnalysis, ChangedFile, ChangeSet, COMMIT_TYPES
from commit_inference.llm.prompt_builder import (
    DIFF_EXCERPT_LINES,
    build_prompt,
    detect_framework,
    detect_primary_language,
    detect_project_type,
)


class TestProjectContext(unittest.TestCase):
    def test_project_type(self) -> None:
        cases = [
            (["package.json", "src/a.ts"], "nodejs"),
            (["backend/pom.xml"], "java"),
            (["pyproject.toml"], "python"),
            (["Cargo.toml"], "rust"),
            (["go.mod"], "go"),
            (["src/a.ts"], "generic"),
        ]
        for paths, expected in cases:
            with self.subTest(paths=paths):
                self.assertEqual(detect_project_type(paths), expected)

    def test_primary_language(self) -> None:
        self.assertEqual(detect_primary_language(["a.py", "b.py", "c.ts"]), "python")
        self.assertEqual(detect_primary_language(["README", "notes.txt"]), "unknown")

    def test_framework(self) -> None:
        self.assertEqual(detect_framework(["next.config.js", "pages/index.tsx"]), "nextjs")
        self.assertEqual(detect_framework(["angular.json"]), "angular")
        self.assertIsNone(detect_framework(["src/a.ts"]))


class TestBuildPrompt(unittest.TestCase):
    def setUp(self) -> None:
        diff = "--- a/src/api/users.ts\n+++ b/src/api/users.ts\n@@ -0,0 +1,2 @@\n+export function getUser() {\n+}\n"
        self.changeset = ChangeSet.from_files(
            [ChangedFile("src/api/users.ts", "added", 2, 0, diff), ChangedFile("package.json", "modified", 1, 1)]
        )
        self.analysis = ChangeAnalysis("feat", "add getUser getter", "minor", "api", ["source", "config"])

    def test_contains_analysis_and_files(self) -> None:
        prompt = build_prompt(self.changeset, self.analysis, COMMIT_TYPES, 72)
        self.assertIn("- Suggested type: feat", prompt)
        self.assertIn("- Suggested scope: api", prompt)
        self.assertIn("- Description: add getUser getter", prompt)
        self.assertIn("Project context: nodejs project, primary language typescript", prompt)
        self.assertIn("- src/api/users.ts (added): +2 -0", prompt)
        self.assertIn("+export function getUser() {", prompt)
        self.assertNotIn("+++ b/src/api/users.ts", prompt)
        self.assertIn("File: package.json\n(no diff available)", prompt)
        self.assertIn("- Available types: feat, fix, docs, style, refactor, test, chore", prompt)
        self.assertIn("- Include scope: api", prompt)
        self.assertIn("under 72 characters", prompt)
        self.assertTrue(prompt.endswith("Subject line:"))

    def test_forced_type_and_template(self) -> None:
        prompt = build_prompt(
            self.changeset,
            self.analysis,
            COMMIT_TYPES,
            50,
            commit_type="fix",
            template="{type}: {description}",
        )
        self.assertIn("- Use commit type: fix", prompt)
        self.assertNotIn("- Available types:", prompt)
        self.assertIn("- Follow this template: {type}: {description}", prompt)

    def test_scope_disabled(self) -> None:
        prompt = build_prompt(self.changeset, self.analysis, COMMIT_TYPES, 72, include_scope=False)
        self.assertIn("- Do not include a scope", prompt)
        self.assertNotIn("- Include scope:", prompt)

    def test_custom_style_has_no_type_requirement(self) -> None:
        prompt = build_prompt(self.changeset, self.analysis, COMMIT_TYPES, 72, style="custom")
        self.assertNotIn("conventional commit format", prompt)

    def test_diff_excerpt_is_limited(self) -> None:
        diff = "\n".join(f"+line {i}" for i in range(DIFF_EXCERPT_LINES + 10))
        changeset = ChangeSet.from_files([ChangedFile("src/big.py", "added", DIFF_EXCERPT_LINES + 10, 0, diff)])
        prompt = build_prompt(changeset, self.analysis, COMMIT_TYPES, 72)
        self.assertIn(f"+line {DIFF_EXCERPT_LINES - 1}", prompt)
        self.assertNotIn(f"+line {DIFF_EXCERPT_LINES}\n", prompt)


if __name__ == "__main__":
    unittest.main()
