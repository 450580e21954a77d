"""Chat feature package: session handling, message store, prompt building and
reply orchestration behind the ``/chat`` routes.

Conversations and messages live in PostgreSQL; replies come from Gemini.
"""
