"""
Script: send_ci package
What: Holds the Python helpers that run each job of the Send release pipeline.
Doing: Groups CLI entrypoints, image naming rules, the pipeline model, and shared utility code.
Why: Keeps pipeline logic readable and testable instead of spreading it across YAML script lines.
Goal: Provide one maintainable home for test, image artifact, and image release logic.
"""
