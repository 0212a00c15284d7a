"""Read-only, explainable, auditable automation.

Automations only ever produce suggestions; every suggestion requires human
approval and every run is written to the audit chain.
"""
