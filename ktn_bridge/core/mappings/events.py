"""Built-in event mappings: DOM listeners → ``kintone.events.on`` events.

Page lifecycle: ``DOMContentLoaded`` on the page element of each kintone
screen. Form lifecycle: ``submit`` on the record forms. The record list
screen is the page-level default, so a bare
``document.addEventListener('DOMContentLoaded', ...)`` maps to it.
"""

from typing import Any, Dict, List

from .models import (
    EventMapping,
    MappingExample,
    PlatformEvent,
    ValueTransform,
    WebEvent,
    WebTrigger,
)


def _detail(web_event: WebEvent) -> Dict[str, Any]:
    return web_event.get("detail") or {}


def _page_show(platform_event: str, web_type: str = "pageload") -> ValueTransform:
    """Transforms for ``*.show`` screens carrying a single record."""

    def to_platform(web_event: WebEvent) -> PlatformEvent:
        detail = _detail(web_event)
        return {
            "type": platform_event,
            "appId": detail.get("appId"),
            "recordId": detail.get("recordId"),
            "record": detail.get("record") or {},
        }

    def to_web(event: PlatformEvent) -> WebEvent:
        return {
            "type": web_type,
            "detail": {
                "appId": event.get("appId"),
                "recordId": event.get("recordId"),
                "record": event.get("record"),
            },
        }

    return ValueTransform(to_platform=to_platform, to_web=to_web)


def _list_show(platform_event: str) -> ValueTransform:
    def to_platform(web_event: WebEvent) -> PlatformEvent:
        detail = _detail(web_event)
        return {
            "type": platform_event,
            "appId": detail.get("appId"),
            "records": detail.get("records") or [],
        }

    def to_web(event: PlatformEvent) -> WebEvent:
        return {
            "type": "pageload",
            "detail": {"appId": event.get("appId"), "records": event.get("records") or []},
        }

    return ValueTransform(to_platform=to_platform, to_web=to_web)


def _form_submit(platform_event: str) -> ValueTransform:
    def to_platform(web_event: WebEvent) -> PlatformEvent:
        detail = _detail(web_event)
        return {
            "type": platform_event,
            "appId": detail.get("appId"),
            "record": detail.get("record") or {},
        }

    def to_web(event: PlatformEvent) -> WebEvent:
        return {
            "type": "formsubmit",
            "detail": {"appId": event.get("appId"), "record": event.get("record")},
        }

    return ValueTransform(to_platform=to_platform, to_web=to_web)


def _show_example(selector: str, event: str, body: str) -> MappingExample:
    return MappingExample(
        web=(
            f"document.querySelector('{selector}').addEventListener('DOMContentLoaded', (e) => {{\n"
            f"  {body}\n"
            "});\n"
        ),
        platform=(
            f"kintone.events.on('{event}', (event) => {{\n"
            f"  {body}\n"
            "  return event;\n"
            "});\n"
        ),
    )


def _submit_example(selector: str, event: str) -> MappingExample:
    return MappingExample(
        web=(
            f"document.querySelector('{selector}').addEventListener('submit', (e) => {{\n"
            "  validateRecord(e.detail.record);\n"
            "});\n"
        ),
        platform=(
            f"kintone.events.on('{event}', (event) => {{\n"
            "  validateRecord(event.record);\n"
            "  return event;\n"
            "});\n"
        ),
    )


EVENT_MAPPINGS: List[EventMapping] = [
    EventMapping(
        platform_event="app.record.index.show",
        web_trigger=WebTrigger(
            event_type="DOMContentLoaded",
            selector=None,
            description="Record list screen finished rendering",
            selector_aliases=('[data-page="record-list"]',),
        ),
        value_transform=_list_show("app.record.index.show"),
        example=MappingExample(
            web=(
                "document.addEventListener('DOMContentLoaded', (e) => {\n"
                "  console.log('record list shown');\n"
                "});\n"
            ),
            platform=(
                "kintone.events.on('app.record.index.show', (event) => {\n"
                "  console.log('record list shown');\n"
                "  return event;\n"
                "});\n"
            ),
        ),
        introduced_version="2019.02",
    ),
    EventMapping(
        platform_event="app.record.detail.show",
        web_trigger=WebTrigger(
            event_type="DOMContentLoaded",
            selector='[data-page="record-detail"]',
            description="Record detail screen finished rendering",
        ),
        value_transform=_page_show("app.record.detail.show"),
        example=_show_example(
            '[data-page="record-detail"]', "app.record.detail.show", "showRelatedRecords();"
        ),
        introduced_version="2019.02",
    ),
    EventMapping(
        platform_event="app.record.create.show",
        web_trigger=WebTrigger(
            event_type="DOMContentLoaded",
            selector='[data-page="record-create"]',
            description="Record create screen finished rendering",
        ),
        value_transform=_page_show("app.record.create.show"),
        example=_show_example(
            '[data-page="record-create"]', "app.record.create.show", "setDefaults();"
        ),
        introduced_version="2019.02",
    ),
    EventMapping(
        platform_event="app.record.edit.show",
        web_trigger=WebTrigger(
            event_type="DOMContentLoaded",
            selector='[data-page="record-edit"]',
            description="Record edit screen finished rendering",
        ),
        value_transform=_page_show("app.record.edit.show"),
        example=_show_example(
            '[data-page="record-edit"]', "app.record.edit.show", "lockReadonlyFields();"
        ),
        introduced_version="2019.02",
    ),
    EventMapping(
        platform_event="app.record.create.submit",
        web_trigger=WebTrigger(
            event_type="submit",
            selector='[data-form="record-create"]',
            description="Record create form is being saved",
        ),
        value_transform=_form_submit("app.record.create.submit"),
        example=_submit_example('[data-form="record-create"]', "app.record.create.submit"),
        introduced_version="2019.02",
    ),
    EventMapping(
        platform_event="app.record.edit.submit",
        web_trigger=WebTrigger(
            event_type="submit",
            selector='[data-form="record-edit"]',
            description="Record edit form is being saved",
        ),
        value_transform=_form_submit("app.record.edit.submit"),
        example=_submit_example('[data-form="record-edit"]', "app.record.edit.submit"),
        introduced_version="2019.02",
    ),
]
