"""flutter-scaffold -- template-driven scaffolding for Flutter projects.

Quick usage::

    from flutter_scaffold import Config, ScaffoldEngine

    engine = ScaffoldEngine(Config(project_root="./my_app"))
    report = engine.run("flutter-new-feature", ["products", "--state", "riverpod"])
    assert report.success
"""

from flutter_scaffold.config import Config
from flutter_scaffold.engine import ScaffoldEngine, ScaffoldPlan
from flutter_scaffold.reporter import ExecutionReport

__all__ = [
    "Config",
    "ExecutionReport",
    "ScaffoldEngine",
    "ScaffoldPlan",
]

__version__ = "0.1.0"
