"""
Application services package.

Contains the chat client services: transport, streaming, conversation state
and the note store collaborator.
"""
