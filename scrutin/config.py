from dotenv import load_dotenv
import os

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scrutin.db")
IS_SQLITE = DATABASE_URL.startswith("sqlite")

# Crée les tables manquantes au démarrage (pas de migrations gérées ici)
CREATE_TABLES_ON_STARTUP = os.getenv("CREATE_TABLES_ON_STARTUP", "true").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE") or None

# Fichier des événements d'audit (mises à jour forcées, redressements, refus d'accès)
AUDIT_LOG_FILE = os.getenv("AUDIT_LOG_FILE", "logs/audit.log")

# En-tête transmis par la passerelle d'authentification en amont
CALLER_HEADER = os.getenv("CALLER_HEADER", "X-User-Id")
