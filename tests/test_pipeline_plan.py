from __future__ import annotations

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from send_ci.pipeline import jobs_for_ref
from send_ci.pipeline_plan import format_plan, main


class PipelinePlanTests(unittest.TestCase):
    def test_format_plan_lists_every_stage(self) -> None:
        lines = format_plan(jobs_for_ref("feature", is_tag=False))
        self.assertEqual(
            lines,
            ["test: test", "artifact: artifact-docker", "release: (no jobs)"],
        )

    def test_main_reports_tag_pipeline(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            report = Path(temp_dir) / "build.env"
            env = {
                "CI_COMMIT_REF_NAME": "v3.4.1",
                "CI_COMMIT_TAG": "v3.4.1",
                "ARTIFACT_REPORT": str(report),
            }
            stdout = io.StringIO()
            with patch.dict(os.environ, env):
                with redirect_stdout(stdout):
                    main()

            self.assertIn("Pipeline for tag v3.4.1:", stdout.getvalue())
            self.assertEqual(
                report.read_text(encoding="utf-8"),
                "PIPELINE_JOBS=test,artifact-docker,release-docker\n",
            )


if __name__ == "__main__":
    unittest.main()
