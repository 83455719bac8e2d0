"""Job application engine: platform scrapers, form filling, queue and orchestrator."""
