"""
RAG Prompt Templates
====================
"""

RAG_PROMPT_TEMPLATE = """Context:
{context}
---
Question: {question}
---
Answer:"""


def generate_rag_prompt(question: str, context: str) -> str:
    """Render the question and retrieved context into a single user prompt."""
    return RAG_PROMPT_TEMPLATE.format(question=question, context=context)
