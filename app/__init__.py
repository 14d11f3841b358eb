# =============================================================================
# Shareholder Meeting Q&A Simulator
# =============================================================================
# Simulates the Q&A part of a shareholder meeting: a shareholder agent asks
# questions about uploaded IR documents and a company agent answers them,
# grounded only in those documents. Turns are paced and run by LangGraph.
#
# Package structure:
#   app/
#   ├── api/          → FastAPI route handlers (documents, simulations,
#   │                    sessions)
#   ├── agents/       → Questioner, Responder, FAQ generator, session engine
#   │                    and registry
#   ├── models/       → Domain dataclasses + Pydantic V2 request/response
#   │                    schemas
#   └── services/     → Text extraction, relevance scoring, context budgets,
#                        LLM providers, document store
# =============================================================================
