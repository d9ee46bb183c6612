"""
StudyScribe - study artifacts from web content.

Turns page text into summaries, multiple-choice flashcards and
multi-source reports using an on-device generation service.

Packages:
- extraction: Main-content extraction, cleanup and validation
- pipeline: Orchestrated summarize / flashcards / report operations
- tasks: Task state machine, duplicate suppression and cancellation
- generation: Interface to the generation service
- storage: Persistent key-value store and result cache
"""

__version__ = "1.0.0"
