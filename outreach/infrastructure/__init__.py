# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - whatsapp/: Selenium-based WhatsApp Web gateway
# - persistence/: SQLite event store and conversation states
# - importer/: CSV/Excel allow-list provider
# - config/: Environment and settings management
