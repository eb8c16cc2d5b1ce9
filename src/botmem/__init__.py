"""
Botmem - persistent structured memory for LLM agents.

Package structure:
- core: Config, logging, error taxonomy
- memory: The four stores (blocks, archival, graph, summaries) and context assembly
- llm: Extraction backends (claude CLI, Anthropic API, Ollama)
- ingest: Extraction pipeline that turns conversation text into memory writes
"""

__version__ = "0.1.0"
