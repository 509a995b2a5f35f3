"""Initial schema - paper sets, report jobs, canvases

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Saved searches and their papers (@search mentions)
    op.create_table(
        'searches',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('query', sa.Text(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=True, index=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'papers',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('search_id', sa.String(64), sa.ForeignKey('searches.id'), nullable=False, index=True),
        sa.Column('title', sa.String(1000), nullable=False),
        sa.Column('authors', sa.JSON(), nullable=False),
        sa.Column('year', sa.String(16), nullable=True),
        sa.Column('abstract', sa.Text(), nullable=True),
        sa.Column('doi', sa.String(255), nullable=True),
        sa.Column('journal', sa.String(500), nullable=True),
        sa.Column('research_question', sa.Text(), nullable=True),
        sa.Column('major_findings', sa.Text(), nullable=True),
        sa.Column('suggestions', sa.Text(), nullable=True),
    )

    # PDF batches (@pdf_batch mentions)
    op.create_table(
        'pdf_batches',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(500), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=True, index=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'pdf_uploads',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('filename', sa.String(500), nullable=False),
        sa.Column('title', sa.String(1000), nullable=True),
        sa.Column('authors', sa.Text(), nullable=True),
        sa.Column('year', sa.String(16), nullable=True),
        sa.Column('background', sa.Text(), nullable=True),
        sa.Column('doi', sa.String(255), nullable=True),
        sa.Column('research_question', sa.Text(), nullable=True),
        sa.Column('major_findings', sa.Text(), nullable=True),
        sa.Column('suggestions', sa.Text(), nullable=True),
        sa.Column('full_text', sa.Text(), nullable=True),
    )

    op.create_table(
        'batch_pdfs',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('batch_id', sa.String(64), sa.ForeignKey('pdf_batches.id'), nullable=False, index=True),
        sa.Column('pdf_id', sa.String(64), sa.ForeignKey('pdf_uploads.id'), nullable=False),
    )

    # Report jobs
    op.create_table(
        'reports',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('status', sa.String(50), nullable=False, default='generating'),
        sa.Column('search_query', sa.Text(), nullable=False),
        sa.Column('structure', sa.JSON(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'report_sections',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('report_id', sa.Uuid(), sa.ForeignKey('reports.id'), nullable=False, index=True),
        sa.Column('section_name', sa.String(500), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, default=0),
        sa.Column('node_id', sa.String(64), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('references', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Canvases
    op.create_table(
        'canvases',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=True, index=True),
        sa.Column('search_query', sa.Text(), nullable=False),
        sa.Column('custom_prompt', sa.Text(), nullable=True),
        sa.Column('structure', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('canvases')
    op.drop_table('report_sections')
    op.drop_table('reports')
    op.drop_table('batch_pdfs')
    op.drop_table('pdf_uploads')
    op.drop_table('pdf_batches')
    op.drop_table('papers')
    op.drop_table('searches')
