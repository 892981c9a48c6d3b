"""Canonical Brand Identity Resolution & Analytics Fact Generation.

Pipeline for one analyzed AI answer:
  1. Name / domain normalization (shared identity slug)
  2. Canonical brand resolution (race-safe find-or-create)
  3. Own-brand matching against the tracked business
  4. Fact expansion (mention x tag rows, or no_brands placeholders)

Input:  AnswerContext (mentions + citations supplied upstream)
Output: analytics_facts / prompt_citations rows, canonical_brands updates
"""
