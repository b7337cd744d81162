# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# -- Project information -----------------------------------------------------

import os
import sys

# Add the project root to sys.path so autodoc can import geometry/, sim/, ml/ ...
sys.path.insert(0, os.path.abspath("../.."))

project = "Driving World"
copyright = "2026, Driving World contributors"
author = "Driving World contributors"
release = "0.1.0"

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",    # generate docs from docstrings
    "sphinx.ext.napoleon",   # parse Google/NumPy style docstrings
    "sphinx.ext.viewcode",   # add links to source code
    "sphinx_rtd_dark_mode",
]

templates_path = ["_templates"]
exclude_patterns = ["**/test_*.py"]

autodoc_member_order = "bysource"
napoleon_numpy_docstring = True
napoleon_google_docstring = True

# -- Options for HTML output -------------------------------------------------

html_theme = "sphinx_rtd_theme"
default_dark_mode = True
html_static_path = ["_static"]

# -- Mock imports to avoid ModuleNotFoundError during docs build --
# The viewer is optional for API docs.
autodoc_mock_imports = ["pygame"]
