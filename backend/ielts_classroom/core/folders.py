from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..errors import DraftValidationError
from .entities import Assignment, AssignmentGroup


logger = logging.getLogger(__name__)


@dataclass
class FolderView:
	folder: AssignmentGroup
	assignments: List[Assignment] = field(default_factory=list)


@dataclass
class LooseAssignment:
	assignment: Assignment
	folder_missing: bool = False


@dataclass
class OrganizedAssignments:
	folders: List[FolderView]
	loose: List[LooseAssignment]


def sort_folders(folders: Sequence[AssignmentGroup]) -> List[AssignmentGroup]:
	return sorted(folders, key=lambda f: (f.order, f.created_at))


def new_folder_order(existing: Sequence[AssignmentGroup]) -> int:
	"""New folders go to the end."""
	return len(existing)


def reorder_positions(folders: Sequence[AssignmentGroup], ordered_ids: Sequence[str]) -> Dict[str, int]:
	"""Map every folder id to its new position.

	``ordered_ids`` must name each folder of the class exactly once.
	"""
	known = {f.id for f in folders}
	if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != known:
		raise DraftValidationError("The new order must list every folder of the class exactly once.")
	return {folder_id: index for index, folder_id in enumerate(ordered_ids)}


def organize_assignments(folders: Sequence[AssignmentGroup], assignments: Sequence[Assignment]) -> OrganizedAssignments:
	"""Place assignments in their folders.

	Assignments whose folder was deleted stay visible in the loose list,
	flagged ``folder_missing``.
	"""
	ordered = sort_folders(folders)
	views = {f.id: FolderView(folder=f) for f in ordered}
	loose: List[LooseAssignment] = []
	for a in assignments:
		if a.group_id is None:
			loose.append(LooseAssignment(a))
		elif a.group_id in views:
			views[a.group_id].assignments.append(a)
		else:
			logger.warning("Assignment %s points at missing folder %s", a.id, a.group_id)
			loose.append(LooseAssignment(a, folder_missing=True))
	return OrganizedAssignments(folders=[views[f.id] for f in ordered], loose=loose)
