"""Create a program together with its modules, chapters and tasks.

The whole tree is written in one transaction; each row gets its own audit
entry. If any insert fails nothing of the tree survives.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.audit.service import record
from skilltrack.database import transaction
from skilltrack.db.models import Milestone, ModuleChapter, Program, Task
from skilltrack.programs.schemas import ModuleInput
from skilltrack.programs.service import require_mentor_user

logger = structlog.get_logger()


async def _add_module(db: AsyncSession, actor_id: str, program_id: str, module: ModuleInput) -> Milestone:
    milestone = Milestone(program_id=program_id, title=module.title, sort_order=module.sort_order)
    db.add(milestone)
    await db.flush()
    await record(db, actor_id, "admin.create_module", "milestone", milestone.id, {"programId": program_id})

    for chapter in module.chapters:
        row = ModuleChapter(
            milestone_id=milestone.id,
            title=chapter.title,
            sort_order=chapter.sort_order,
            body_md=chapter.body_md,
        )
        db.add(row)
        await db.flush()
        await record(
            db,
            actor_id,
            "admin.create_module_chapter",
            "module_chapter",
            row.id,
            {"programId": program_id, "moduleId": milestone.id},
        )

    for item in module.items:
        task = Task(
            program_id=program_id,
            milestone_id=milestone.id,
            title=item.title,
            description=item.description,
            deadline_at=item.deadline_at,
            resource_links=item.links(),
        )
        db.add(task)
        await db.flush()
        await record(
            db,
            actor_id,
            "admin.create_module_item",
            "task",
            task.id,
            {"programId": program_id, "moduleId": milestone.id},
        )

    return milestone


async def create_program_with_structure(
    db: AsyncSession,
    actor_id: str,
    mentor_id: str,
    title: str,
    description: str,
    modules: Sequence[ModuleInput],
) -> Program:
    """Write program, modules, chapters and tasks atomically.

    Raises:
        ValidationError: ``mentor_id`` is not a mentor. Checked before any write.
    """
    await require_mentor_user(db, mentor_id)

    async with transaction(db):
        program = Program(title=title, description=description, mentor_id=mentor_id)
        db.add(program)
        await db.flush()
        await record(db, actor_id, "admin.create_program", "program", program.id, {"mentorId": mentor_id})

        for module in modules:
            await _add_module(db, actor_id, program.id, module)

    logger.info("program_structure_created", program_id=program.id, modules=len(modules))
    return program
