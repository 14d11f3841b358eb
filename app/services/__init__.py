# =============================================================================
# Services Package — Business Logic
# =============================================================================
# Contains the core business logic, separated from API handlers:
#   - parser.py: text extraction with Docling (PDF, Word) and plain text
#   - documents.py: in-memory store of uploaded documents
#   - vocabulary.py: stopwords, domain terms, synonyms, themes
#   - scorer.py: keyword relevance scoring and topic extraction
#   - budgeter.py: character-bounded context assembly
#   - llm.py: Multi-provider LLM abstraction (Anthropic, OpenAI-compatible)
# =============================================================================
