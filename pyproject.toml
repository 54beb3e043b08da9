[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "venom"
version = "0.1.0"
description = "Data model, executor registry and result reporting for declarative integration test suites"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["testing", "integration-tests", "junit", "tap", "executors"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["venom"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
