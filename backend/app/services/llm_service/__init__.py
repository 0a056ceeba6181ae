"""LLM service module.

Provides chat-model access and structured output extraction
(OpenAI, Ollama, Google Gemini, NVIDIA, custom endpoints).

Key modules:
- llm.py: Provider factory and client creation
- retry.py: Transport-level retry with exponential back-off
- format_prompt.py: Output-format descriptors and format instructions
- structured_output.py: Structured output extraction (strict_output)
- llm_schemas.py: Pydantic schemas for question records
"""
