"""
document_automation: schema-constrained document extraction with an optional
automation hand-off.

Text extraction, the generation adapter and the extraction orchestrator form
the first phase; the automation dispatcher forwards the extracted context to a
workflow endpoint in the second. The caller carries state between the two.
"""

__all__ = [
    "schema",
    "preprocess",
    "generation",
    "orchestrator",
    "automation",
    "api",
]
