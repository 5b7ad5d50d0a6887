# File: link_scout/parser/__init__.py
"""link_scout.parser: разбор HTML (ресурсы страницы и якоря)."""
