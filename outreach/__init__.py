# Outreach - WhatsApp Outreach & Reminder Engine
# ===============================================
# One configurable service replacing a family of near-identical bot scripts.
#
# ARCHITECTURE LAYERS:
# - Presentation:   HTTP surface and entry scripts
# - Application:    Inbound handling, event dispatch, reminder scheduling
# - Domain:         Pure business logic (no external dependencies)
# - Infrastructure: External services (WhatsApp Web, SQLite, spreadsheets)
