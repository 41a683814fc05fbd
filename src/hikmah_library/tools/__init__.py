"""
MCP tools for the Al Hikmah Library server.

Tools are the operations with side effects (borrowing, bookmarks, accounts)
plus the catalog search and the assistant. Each tool is a dictionary with
its name, description, input JSON schema and async handler; ``server.py``
registers everything in ``all_tools``.
"""

from .accounts import delete_user, list_users, login, register_user, set_user_role, user_activity
from .assistant import ask_assistant
from .bookmarks import add_bookmark, list_bookmarks, remove_bookmark
from .catalog import add_book, add_category, delete_book, search_books, update_book
from .circulation import (
    borrow_book,
    get_borrowing,
    list_borrowings,
    list_overdue_borrowings,
    renew_borrowing,
    return_book,
)

all_tools = [
    search_books,
    borrow_book,
    return_book,
    renew_borrowing,
    list_borrowings,
    get_borrowing,
    list_overdue_borrowings,
    add_bookmark,
    remove_bookmark,
    list_bookmarks,
    ask_assistant,
    register_user,
    login,
    list_users,
    set_user_role,
    delete_user,
    user_activity,
    add_book,
    update_book,
    delete_book,
    add_category,
]

__all__ = [
    "add_book",
    "add_bookmark",
    "add_category",
    "all_tools",
    "ask_assistant",
    "borrow_book",
    "delete_book",
    "delete_user",
    "get_borrowing",
    "list_bookmarks",
    "list_borrowings",
    "list_overdue_borrowings",
    "list_users",
    "login",
    "register_user",
    "remove_bookmark",
    "renew_borrowing",
    "return_book",
    "search_books",
    "set_user_role",
    "update_book",
    "user_activity",
]
