"""Car catalog extractor.

Turns an uploaded PDF catalog or a web page into structured car
specification rows through a generative model, and keeps the results in a
local catalog store for browsing, filtering, editing and export.

Architecture:
    config/     - Typed settings from YAML + environment
    logging/    - JSON file + console log handlers
    source/     - PDF rendering and web page fetching
    gateway/    - Model calls: text, records, summary, chat
    pipeline/   - Progress state and the extraction orchestrator
    store/      - SQLite catalog persistence and preview blobs
    export/     - Filtering plus JSON and CSV export
    session.py  - Per-application context tying the pieces together
"""

__version__ = "0.1.0"
