"""LangGraph agent definitions for the Gigfolio onboarding conversation.

Modules:
    field_catalog: Field descriptors for the generic and hospitality flows
    session: Session state, step log and the in-process session store
    sequencer: Next-field selection and step emission
    confirmations: Job title, similar skill, sanitized and existing-data gates
    state: Turn state for the input-handling graph
    onboarding: Input-handling graph and the public session operations
    onboarding_prompts: Prompt templates for the AI helpers
"""
