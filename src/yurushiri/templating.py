"""Shared Jinja2 environment for server-rendered pages"""

from pathlib import Path

from fastapi.templating import Jinja2Templates

from yurushiri.config import config
from yurushiri.models.labels import AGE_GROUP_LABELS, DISCOVERY_LABELS, OCCUPATION_LABELS
from yurushiri.utils.formatting import format_date_ja, format_timestamp

# Get template directory relative to this file
template_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(template_dir))

templates.env.filters["date_ja"] = format_date_ja
templates.env.filters["timestamp"] = format_timestamp
templates.env.globals.update(
    age_labels=AGE_GROUP_LABELS,
    occupation_labels=OCCUPATION_LABELS,
    discovery_labels=DISCOVERY_LABELS,
    enable_ai_image_tools=config.get("enable_ai_image_tools", False),
)
