"""Role verification: web evidence analysis and language-model judge."""
