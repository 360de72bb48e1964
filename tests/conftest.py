"""
Shared fixtures for implgen tests.
"""

import shutil
from pathlib import Path

import pytest

from implgen.config import GenerationConfig, ImplgenConfig, PathsConfig
from implgen.models import Contract, Import, Method, Parameter
from implgen.parsing.go_parser import default_parser
from implgen.resolver import ImportResolver, ModuleRoot

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_project(tmp_path):
    """A writable copy of the sample Go module."""
    project = tmp_path / "sample_project"
    shutil.copytree(FIXTURES_DIR / "sample_project", project)
    return project


@pytest.fixture
def parser():
    return default_parser()


@pytest.fixture
def resolver(sample_project):
    return ImportResolver(sample_project, ModuleRoot(sample_project))


@pytest.fixture
def config(sample_project):
    """Configuration for the sample project without an external formatter."""
    return ImplgenConfig(
        paths_settings=PathsConfig(root=str(sample_project)),
        generation_settings=GenerationConfig(formatter="none"),
    )


@pytest.fixture
def another_contract():
    return Contract(
        name="AnotherRepository",
        package_name="waltuh",
        package_path="api/waltuh",
        definition_filename="another.go",
        methods=[
            Method("A", returns=[Parameter(type="string"), Parameter(type="error")]),
            Method(
                "B",
                parameters=[Parameter("ctx", "context.Context")],
                returns=[Parameter(type="error")],
            ),
        ],
        imports=[Import("context")],
    )


@pytest.fixture
def bare_contract():
    return Contract(
        name="Repository",
        package_name="waltuh",
        package_path="api/waltuh",
        definition_filename="repository.go",
        methods=[
            Method(
                "MakeBreakfast",
                parameters=[Parameter("birthday", "int"), Parameter("kilograms", "int")],
                returns=[Parameter(type="Waltuh")],
            ),
            Method(
                "SynthesizeMeth",
                parameters=[
                    Parameter("ctx", "context.Context"),
                    Parameter("flyPresent", "bool"),
                    Parameter("withJesse", "bool"),
                ],
                returns=[Parameter(type="int")],
            ),
            Method("Nope"),
        ],
        imports=[Import("context")],
    )
