# =============================================================================
# Agents Package — Simulated Dialogue
# =============================================================================
# The two roles of the simulated meeting and what drives them:
#   - questioner.py: shareholder — expected questions, then LLM or bank
#     questions
#   - responder.py: company — document-grounded answers, length-capped
#   - faq.py: candidate shareholder questions derived from documents
#   - session.py: session state machine + LangGraph turn graph
#   - registry.py: session store and plain-text transcript export
# =============================================================================
