import os
from typing import List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

class Config:
    # Server Configuration
    PORT = int(os.getenv("PORT", 8080))
    HOST = os.getenv("HOST", "0.0.0.0")

    # CORS Configuration
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    # Rate Limiting
    EXPORT_RATE_LIMIT = os.getenv("EXPORT_RATE_LIMIT", "30/minute")

    # Key-value store for the last-entered landlord/tenant details
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rent_invoice.db")

    @property
    def database_path(self) -> str:
        return self.DATABASE_URL.replace("sqlite:///", "")

    # Export Settings
    EXPORT_DIR = os.getenv("EXPORT_DIR", "generated_invoices")

    # Invoice Presentation
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")
    INVOICE_TITLE = os.getenv("INVOICE_TITLE", "RENT INVOICE")
    FOOTER_TEXT = os.getenv("FOOTER_TEXT", "Thank you for your timely payment.")

    # TrueType fonts for the PDF; the built-in Helvetica has no ₹ glyph
    PDF_FONT_PATH = os.getenv("PDF_FONT_PATH", "")
    PDF_BOLD_FONT_PATH = os.getenv("PDF_BOLD_FONT_PATH", "")

    # Logging Configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "rent_invoice.log")

    # Sessions idle longer than this are dropped
    SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", 24))

config = Config()
