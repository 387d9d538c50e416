"""
gradeflow: course, assessment and grading workflow service.

Records live in a prefix-addressable key-value store, files in a blob store,
and identities come from an external provider. See ``gradeflow.index`` for
the HTTP surface.
"""

__version__ = "0.1.0"
