import acmesync

project = 'acmesync'
copyright = '2026, acmesync contributors'
author = 'acmesync contributors'

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.intersphinx',
    'myst_parser',
]
version = release = acmesync.__version__

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'furo'
html_static_path = ['_static']

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'cryptography': ('https://cryptography.io/en/latest/', None),
    'httpx': ('https://www.python-httpx.org/', None),
    'anyio': ('https://anyio.readthedocs.io/en/stable/', None),
}

autoclass_content = 'both'
autodoc_member_order = 'bysource'
autodoc_preserve_defaults = True
