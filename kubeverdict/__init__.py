"""kubeverdict: cluster behavioral monitor tests.

Observes a live cluster over a bounded run window, turns observations into
intervals and point checks, and renders them as JUnit pass/fail/flake verdicts.
"""

__version__ = "0.1.0"
