[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "carsite"
version = "0.1.0"
description = "A small web site for browsing, comparing and downloading car model information from a JSON API"
requires-python = ">=3.10"
keywords = ["cars", "flask", "web", "catalogue", "comparison"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
carsite = "carsite.app:main"

[tool.hatch.build.targets.wheel]
packages = ["carsite"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
