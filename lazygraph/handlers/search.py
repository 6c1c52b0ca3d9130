"""Incremental commit search in the graph."""

from __future__ import annotations

from enum import Enum

from ..actions import Action, SearchAction
from ..git.search import filter_commits
from .base import ActionHandler, HandlerContext, Operation
from .refresh import select_commit


class SearchHandler(ActionHandler):
    category = SearchAction

    def operations(self) -> dict[Enum, Operation]:
        return {
            SearchAction.OPEN: self._open,
            SearchAction.CLOSE: self._close,
            SearchAction.INSERT_CHAR: self._insert_char,
            SearchAction.DELETE_CHAR: self._delete_char,
            SearchAction.NEXT_RESULT: lambda ctx, _: self._step(ctx, 1),
            SearchAction.PREVIOUS_RESULT: lambda ctx, _: self._step(ctx, -1),
            SearchAction.CHANGE_TYPE: self._change_type,
            SearchAction.EXECUTE: self._execute,
        }

    def _run(self, context: HandlerContext) -> None:
        state = context.state
        search = state.search
        search.results = filter_commits(state.commits, search.query, search.search_type)
        search.current_result = 0
        first = search.current_index()
        if first is not None:
            select_commit(state, context.repo, first)

    def _open(self, context: HandlerContext, action: Action) -> None:
        search = context.state.search
        search.is_active = True
        search.query = ""
        search.results = []
        search.current_result = 0

    def _close(self, context: HandlerContext, action: Action) -> None:
        context.state.search.is_active = False

    def _insert_char(self, context: HandlerContext, action: Action) -> None:
        context.state.search.query += action.char or ""
        self._run(context)

    def _delete_char(self, context: HandlerContext, action: Action) -> None:
        search = context.state.search
        search.query = search.query[:-1]
        self._run(context)

    def _change_type(self, context: HandlerContext, action: Action) -> None:
        search = context.state.search
        search.search_type = search.search_type.next()
        self._run(context)

    def _step(self, context: HandlerContext, delta: int) -> None:
        search = context.state.search
        if not search.results:
            return
        search.current_result = (search.current_result + delta) % len(search.results)
        select_commit(context.state, context.repo, search.results[search.current_result])

    def _execute(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        self._run(context)
        state.search.is_active = False
        count = len(state.search.results)
        state.set_flash(f"{count} results found" if count else "No results")
