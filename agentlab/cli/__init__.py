"""agentlab command-line interface.

The console script ``agentlab`` enters through ``agentlab.cli.main:main``.
"""
