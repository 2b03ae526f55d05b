"""Initial catalog schema: lookups, donors, titles, copies, sales, sequences

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Creates:
1. Lookup tables (authors, languages, categories)
2. Donors with their immutable donor codes
3. BookTitle (one row per title/author/language/category) and BookCopy
4. Sales and SaleItems (a copy appears on at most one sale item)
5. catalog_sequences for book_id / donor_code allocation
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _lookup_table(name):
    op.create_table(name,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )


def upgrade():
    # ==========================================================================
    # 1. LOOKUPS
    # ==========================================================================
    _lookup_table('authors')
    _lookup_table('languages')
    _lookup_table('categories')

    # ==========================================================================
    # 2. DONORS
    # ==========================================================================
    op.create_table('donors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('donor_code', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('donors', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_donors_donor_code'), ['donor_code'], unique=True)

    # ==========================================================================
    # 3. TITLES AND COPIES
    # ==========================================================================
    op.create_table('book_titles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.String(length=16), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('title_key', sa.String(length=255), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=False),
        sa.Column('language_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['author_id'], ['authors.id'], ),
        sa.ForeignKeyConstraint(['language_id'], ['languages.id'], ),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('title_key', 'author_id', 'language_id', 'category_id', name='uq_book_titles_logical_key'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('book_titles', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_book_titles_book_id'), ['book_id'], unique=True)
        batch_op.create_index(batch_op.f('ix_book_titles_title_key'), ['title_key'], unique=False)
        batch_op.create_index(batch_op.f('ix_book_titles_author_id'), ['author_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_book_titles_category_id'), ['category_id'], unique=False)

    op.create_table('book_copies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_title_id', sa.Integer(), nullable=False),
        sa.Column('donor_id', sa.Integer(), nullable=False),
        sa.Column('shelf_location', sa.String(length=64), nullable=True),
        sa.Column('condition', sa.Enum('New', 'Good', 'Medium', 'Poor', name='book_condition', native_enum=False, length=16), nullable=False),
        sa.Column('buying_price_cents', sa.Integer(), nullable=False),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False),
        sa.Column('is_free_donation', sa.Boolean(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('serial_number', sa.Integer(), nullable=False),
        sa.Column('book_code', sa.String(length=32), nullable=False),
        sa.Column('is_sold', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('buying_price_cents >= 0', name='ck_book_copies_buying_price_nonneg'),
        sa.CheckConstraint('selling_price_cents >= 0', name='ck_book_copies_selling_price_nonneg'),
        sa.CheckConstraint('serial_number >= 1', name='ck_book_copies_serial_positive'),
        sa.ForeignKeyConstraint(['book_title_id'], ['book_titles.id'], ),
        sa.ForeignKeyConstraint(['donor_id'], ['donors.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('book_title_id', 'serial_number', name='uq_book_copies_title_serial'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('book_copies', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_book_copies_book_code'), ['book_code'], unique=True)
        batch_op.create_index(batch_op.f('ix_book_copies_book_title_id'), ['book_title_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_book_copies_donor_id'), ['donor_id'], unique=False)
        batch_op.create_index('ix_book_copies_sold_created', ['is_sold', 'created_at'], unique=False)

    # ==========================================================================
    # 4. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('sold_party_name', sa.String(length=120), nullable=True),
        sa.Column('sold_party_contact', sa.String(length=120), nullable=True),
        sa.CheckConstraint('subtotal_cents >= 0', name='ck_sales_subtotal_nonneg'),
        sa.CheckConstraint('tax_cents >= 0', name='ck_sales_tax_nonneg'),
        sa.CheckConstraint('total_cents = subtotal_cents + tax_cents', name='ck_sales_total_consistent'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_sold_at'), ['sold_at'], unique=False)

    op.create_table('sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('book_copy_id', sa.Integer(), nullable=False),
        sa.Column('price_at_sale_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint('price_at_sale_cents >= 0', name='ck_sale_items_price_nonneg'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['book_copy_id'], ['book_copies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('book_copy_id', name='uq_sale_items_book_copy'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_items_sale_id'), ['sale_id'], unique=False)

    # ==========================================================================
    # 5. CATALOG SEQUENCES
    # ==========================================================================
    op.create_table('catalog_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=32), nullable=False),
        sa.Column('next_value', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_catalog_sequences_name'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('catalog_sequences')
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_sale_items_sale_id'))
    op.drop_table('sale_items')
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_sales_sold_at'))
    op.drop_table('sales')
    with op.batch_alter_table('book_copies', schema=None) as batch_op:
        batch_op.drop_index('ix_book_copies_sold_created')
        batch_op.drop_index(batch_op.f('ix_book_copies_donor_id'))
        batch_op.drop_index(batch_op.f('ix_book_copies_book_title_id'))
        batch_op.drop_index(batch_op.f('ix_book_copies_book_code'))
    op.drop_table('book_copies')
    with op.batch_alter_table('book_titles', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_book_titles_category_id'))
        batch_op.drop_index(batch_op.f('ix_book_titles_author_id'))
        batch_op.drop_index(batch_op.f('ix_book_titles_title_key'))
        batch_op.drop_index(batch_op.f('ix_book_titles_book_id'))
    op.drop_table('book_titles')
    with op.batch_alter_table('donors', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_donors_donor_code'))
    op.drop_table('donors')
    op.drop_table('categories')
    op.drop_table('languages')
    op.drop_table('authors')
