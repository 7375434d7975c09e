[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webspider"
version = "0.1.0"
description = "Crawl a website and collect the text of its pages as one markdown-like document."
requires-python = ">=3.10"
keywords = ["crawler", "spider", "scraping", "web", "content-extraction", "markdown"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Indexing/Search",
    "Topic :: Text Processing :: Markup :: HTML",
]
dependencies = [
    "requests>=2.28",
    "beautifulsoup4>=4.11",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "responses>=0.23",
]

[project.scripts]
webspider = "webspider.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["webspider"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
