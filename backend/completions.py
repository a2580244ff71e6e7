"""
Completion Provider - WordPress function suggestions for PHP editing.

Suggestions are offered only when the text before the cursor ends with one of
the trigger prefixes. ``get_`` additionally offers one ``get_<post type>``
snippet per custom post type found in the installation.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from backend.errors import WordPressError

logger = logging.getLogger("completions")


class CompletionKind(Enum):
    FUNCTION = "function"
    SNIPPET = "snippet"


@dataclass
class CompletionItem:
    label: str
    kind: CompletionKind
    detail: str
    documentation: str
    insert_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


HOOK_FUNCTIONS = ["add_action", "add_filter", "add_shortcode", "add_menu_page", "add_submenu_page"]
API_FUNCTIONS = ["wp_enqueue_style", "wp_enqueue_script", "wp_insert_post", "wp_query"]
TEMPLATE_FUNCTIONS = ["get_template_part", "get_header", "get_footer", "get_sidebar", "get_post_meta"]

TRIGGER_PREFIXES = ("add_", "wp_", "get_")

POST_TYPE_SNIPPET = """get_posts(array(
    'post_type' => '{post_type}',
    'numberposts' => ${{1:-1}},
    'post_status' => 'publish'
))"""


def _function_items(names: List[str], detail: str, doc: str) -> List[CompletionItem]:
    return [
        CompletionItem(
            label=name,
            kind=CompletionKind.FUNCTION,
            detail=f"{detail}: {name}",
            documentation=f"{doc} {name}",
        )
        for name in names
    ]


class CompletionProvider:
    """Rule-based completions backed by a WordPressManager for custom post types."""

    def __init__(self, manager):
        self.manager = manager
        self.rules = [
            ("add_", self._hook_items),
            ("wp_", self._api_items),
            ("get_", self._getter_items),
        ]

    async def provide(self, line_prefix: str) -> List[CompletionItem]:
        """Completions for the text before the cursor; empty when no prefix triggers."""
        if not line_prefix or not line_prefix.endswith(TRIGGER_PREFIXES):
            return []

        items: List[CompletionItem] = []
        for prefix, rule in self.rules:
            if line_prefix.endswith(prefix):
                items.extend(await rule())
        return items

    async def _hook_items(self) -> List[CompletionItem]:
        return _function_items(HOOK_FUNCTIONS, "WordPress Hook", "WordPress hook function")

    async def _api_items(self) -> List[CompletionItem]:
        return _function_items(API_FUNCTIONS, "WordPress API", "WordPress API function")

    async def _getter_items(self) -> List[CompletionItem]:
        items = []
        try:
            post_types = await self.manager.get_custom_post_types()
        except WordPressError as e:
            logger.warning(f"Custom post types unavailable for completions: {e}")
            post_types = []

        for post_type in post_types:
            items.append(CompletionItem(
                label=f"get_{post_type}",
                kind=CompletionKind.SNIPPET,
                detail=f"WordPress Custom: get_{post_type}",
                documentation=f"Get {post_type} custom post type",
                insert_text=POST_TYPE_SNIPPET.format(post_type=post_type),
            ))

        items.extend(_function_items(TEMPLATE_FUNCTIONS, "WordPress API", "WordPress template function"))
        return items
