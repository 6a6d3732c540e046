"""
Tests for the project metadata.
"""
import os
import re

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def test_readme_exists_and_is_the_package_description():
    with open(os.path.join(ROOT, 'pyproject.toml'), encoding='utf-8') as f:
        match = re.search(r'^readme = "([^"]+)"$', f.read(), re.MULTILINE)

    assert match is not None
    assert match.group(1) == 'README.md'
    assert os.path.isfile(os.path.join(ROOT, 'README.md'))
