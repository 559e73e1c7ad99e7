from enum import Enum


class ToolName(str, Enum):
    """Closed catalog of tools the assistant may advertise to the model."""

    # Ventures
    GET_VENTURES = "get_ventures"
    CREATE_VENTURE = "create_venture"
    GET_VENTURE_SUMMARY = "get_venture_summary"
    # Projects
    GET_PROJECTS = "get_projects"
    GET_PROJECT_DETAILS = "get_project_details"
    CREATE_PROJECT = "create_project"
    # Tasks
    GET_TASKS = "get_tasks"
    GET_TODAY_TASKS = "get_today_tasks"
    CREATE_TASK = "create_task"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    # Captures
    GET_CAPTURES = "get_captures"
    CREATE_CAPTURE = "create_capture"
    CLARIFY_CAPTURE = "clarify_capture"
    # Health & nutrition
    GET_HEALTH_ENTRIES = "get_health_entries"
    LOG_HEALTH_ENTRY = "log_health_entry"
    GET_NUTRITION_ENTRIES = "get_nutrition_entries"
    LOG_MEAL = "log_meal"
    # Documents
    GET_DOCS = "get_docs"
    GET_DOCUMENT = "get_document"
    CREATE_DOCUMENT = "create_document"
    SEARCH_DOCS = "search_docs"
    # Trading
    GET_TRADING_JOURNAL = "get_trading_journal"
    LOG_TRADE = "log_trade"
    ANALYZE_TRADING_PERFORMANCE = "analyze_trading_performance"
    # Shopping
    GET_SHOPPING_LIST = "get_shopping_list"
    ADD_SHOPPING_ITEM = "add_shopping_item"
    COMPLETE_SHOPPING_ITEM = "complete_shopping_item"
    # Books
    GET_BOOKS = "get_books"
    ADD_BOOK = "add_book"
    UPDATE_BOOK_STATUS = "update_book_status"
    # Days & rituals
    GET_DAY = "get_day"
    UPDATE_DAY = "update_day"
    LOG_EVENING_REVIEW = "log_evening_review"
    # Overview
    GET_SUMMARY = "get_summary"
