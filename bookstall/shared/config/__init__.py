"""
Shared Config Module
====================

settings/: YAML configuration files (defaults, user, project) read by
``bookstall.shared.core.configuration.ConfigManager``.
"""
