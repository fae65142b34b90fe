"""Built-in CLI commands.

- :mod:`authkeeper.commands.session` -- ``login``, ``logout``, ``status``,
  ``activity`` and ``get``.
- :mod:`authkeeper.commands.config` -- the ``config`` sub-command group.
"""
