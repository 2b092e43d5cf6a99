import logging

from notion_client import Client
from notion_client.helpers import collect_paginated_api

logger = logging.getLogger(__name__)

DATABASE_TITLE = "Habit Tracker"

COLOR_OPTIONS = [
    {"name": "primary", "color": "blue"},
    {"name": "secondary", "color": "green"},
    {"name": "accent", "color": "orange"},
    {"name": "danger", "color": "red"},
    {"name": "purple", "color": "purple"},
    {"name": "pink", "color": "pink"},
]


def _page_key(page):
    properties = page.get("properties", {})
    habit_id = (properties.get("Habit ID") or {}).get("number")
    day = ((properties.get("Date") or {}).get("date") or {}).get("start")
    return habit_id, day


class NotionIntegration:
    """Mirrors habit records into a Notion database, one page per (habit, day)."""

    def __init__(self, api_key, database_id=None, parent_page_id=None, client=None):
        self.api_key = api_key
        self.database_id = database_id
        self.parent_page_id = parent_page_id
        self.notion = client or Client(auth=api_key)

    def create_database(self):
        if not self.parent_page_id:
            raise ValueError("NOTION_PARENT_PAGE_ID is required to create a database")
        response = self.notion.databases.create(
            parent={"type": "page_id", "page_id": self.parent_page_id},
            title=[{"type": "text", "text": {"content": DATABASE_TITLE}}],
            properties={
                "Habit Name": {"title": {}},
                "Date": {"date": {}},
                "Completed": {"checkbox": {}},
                "Habit ID": {"number": {}},
                "Description": {"rich_text": {}},
                "Color": {"select": {"options": COLOR_OPTIONS}},
            },
        )
        self.database_id = response["id"]
        logger.info(f"Created Notion database {self.database_id}")
        return self.database_id

    def get_or_create_database(self):
        if self.database_id:
            return self.database_id
        return self.create_database()

    def query_pages(self, database_id):
        return collect_paginated_api(self.notion.databases.query, database_id=database_id)

    def sync_habits(self, habits, records):
        """Create missing pages and flip the Completed box where it changed.

        Returns a ``(created, updated)`` tuple.
        """
        database_id = self.get_or_create_database()
        pages = {_page_key(page): page for page in self.query_pages(database_id)}
        habits_by_id = {habit.id: habit for habit in habits}

        created = updated = 0
        for record in records:
            habit = habits_by_id.get(record.habit_id)
            if not habit:
                continue
            day = record.date.date().isoformat()
            page = pages.get((habit.id, day))
            if page:
                current = page["properties"].get("Completed", {}).get("checkbox")
                if current != record.completed:
                    self.notion.pages.update(
                        page_id=page["id"],
                        properties={"Completed": {"checkbox": record.completed}},
                    )
                    updated += 1
                continue
            page = self.notion.pages.create(
                parent={"database_id": database_id},
                properties={
                    "Habit Name": {"title": [{"text": {"content": habit.name}}]},
                    "Date": {"date": {"start": day}},
                    "Completed": {"checkbox": record.completed},
                    "Habit ID": {"number": habit.id},
                    "Description": {"rich_text": [{"text": {"content": habit.description or ""}}]},
                    "Color": {"select": {"name": habit.color_tag}},
                },
            )
            pages[(habit.id, day)] = page
            created += 1
        logger.info(f"Notion sync created {created} pages and updated {updated}")
        return created, updated
