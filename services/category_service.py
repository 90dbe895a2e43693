import logging

from sqlalchemy import func

from forms.category_forms import CategoryForm, UpdateCategoryForm, CategoryFiltersForm
from models import db, Category, Product
from services.errors import ApiError
from services.utils import atomic, page_params, paginate, order_by, like, log_action

logger = logging.getLogger(__name__)


def _product_count():
    return (db.session.query(func.count(Product.id))
            .filter(Product.category_id == Category.id)
            .correlate(Category).scalar_subquery())


class CategoryService:

    @staticmethod
    def _get(category_id):
        category = db.session.get(Category, category_id)
        if category is None:
            raise ApiError('Categoria não encontrada', 404)
        return category

    @staticmethod
    def _check_name(name, exclude_id=None):
        query = Category.query.filter(func.lower(Category.name) == name.strip().lower())
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        if query.first() is not None:
            raise ApiError('Já existe uma categoria com este nome', 409)

    @staticmethod
    def list(args=None):
        form = CategoryFiltersForm.from_args(args).validate_or_raise()
        query = Category.query
        if form.search.data:
            term = like(form.search.data)
            query = query.filter(Category.name.ilike(term) | Category.description.ilike(term))
        if form.is_active.data is not None:
            query = query.filter(Category.is_active.is_(form.is_active.data))
        if form.has_products.data is not None:
            has_products = Category.products.any()
            query = query.filter(has_products if form.has_products.data else ~has_products)
        column = _product_count() if form.sort_by.data == 'productCount' else {
            'name': Category.name, 'createdAt': Category.created_at}[form.sort_by.data]
        query = order_by(query, column, form.sort_order.data)
        page, limit = page_params(form)
        return paginate(query, page, limit, lambda c: c.to_dict(with_counts=True))

    @staticmethod
    def get(category_id):
        return CategoryService._get(category_id).to_dict(with_counts=True)

    @staticmethod
    def products(category_id, active_only=True):
        category = CategoryService._get(category_id)
        query = category.products
        if active_only:
            query = query.filter_by(is_active=True)
        return [p.to_dict() for p in query.order_by(Product.name).all()]

    @staticmethod
    def create(data, user):
        form = CategoryForm.from_json(data).validate_or_raise()
        CategoryService._check_name(form.name.data)
        with atomic():
            category = Category(
                name=form.name.data.strip(),
                description=form.description.data or None,
                cnae=form.cnae.data or None,
                is_active=True if form.is_active.data is None else form.is_active.data,
            )
            db.session.add(category)
        log_action(user, 'category.create', category.id, name=category.name)
        return category

    @staticmethod
    def update(category_id, data, user):
        category = CategoryService._get(category_id)
        form = UpdateCategoryForm.from_json(data).validate_or_raise()
        changes = form.provided()
        if changes.get('name'):
            CategoryService._check_name(changes['name'], exclude_id=category.id)
        with atomic():
            if changes.get('name'):
                category.name = changes['name'].strip()
            if 'description' in changes:
                category.description = changes['description'] or None
            if 'cnae' in changes:
                category.cnae = changes['cnae'] or None
            if 'is_active' in changes:
                category.is_active = changes['is_active']
        log_action(user, 'category.update', category.id, fields=','.join(changes))
        return category

    @staticmethod
    def delete(category_id, user):
        category = CategoryService._get(category_id)
        count = category.products.count()
        if count:
            raise ApiError(f'Categoria possui {count} produto(s) e não pode ser excluída', 409)
        with atomic():
            db.session.delete(category)
        log_action(user, 'category.delete', category_id)

    @staticmethod
    def search(term, limit=10):
        query = Category.query.filter(Category.is_active.is_(True))
        if term:
            query = query.filter(Category.name.ilike(like(term)))
        return [{'value': c.id, 'label': c.name} for c in query.order_by(Category.name).limit(limit).all()]

    @staticmethod
    def statistics():
        total = Category.query.count()
        active = Category.query.filter(Category.is_active.is_(True)).count()
        with_products = Category.query.filter(Category.products.any()).count()
        top = (db.session.query(Category, func.count(Product.id).label('product_count'))
               .join(Product, Product.category_id == Category.id)
               .group_by(Category.id).order_by(func.count(Product.id).desc()).limit(5).all())
        return {
            'total': total,
            'active': active,
            'inactive': total - active,
            'withProducts': with_products,
            'withoutProducts': total - with_products,
            'topCategories': [{'id': c.id, 'name': c.name, 'productCount': count} for c, count in top],
        }
