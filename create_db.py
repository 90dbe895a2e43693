from decimal import Decimal

from app import create_app
from models import db
from models.user import User, ADMIN, MANAGER, SALESPERSON
from models.category import Category
from models.supplier import Supplier
from models.product import Product
from models.customer import Customer, RETAIL, WHOLESALE
from services.inventory_service import InventoryService


def create_database():
    app = create_app()
    with app.app_context():
        # drop and recreate every table
        db.drop_all()
        print("Banco de dados antigo removido")

        db.create_all()
        print("Banco de dados criado")

        admin_user = User(name='Administrador', email='admin@comercialpereira.com', role=ADMIN)
        admin_user.set_password('admin123')
        manager = User(name='Gerente Loja', email='gerente@comercialpereira.com', role=MANAGER)
        manager.set_password('gerente123')
        seller = User(name='Vendedor Balcão', email='vendedor@comercialpereira.com', role=SALESPERSON)
        seller.set_password('vendedor123')
        db.session.add_all([admin_user, manager, seller])

        categories = {
            'ferragens': Category(name='Ferragens', description='Parafusos, pregos e fixadores', cnae='4744-0/01'),
            'eletrica': Category(name='Material Elétrico', description='Fios, tomadas e disjuntores',
                                 cnae='4742-3/00'),
            'hidraulica': Category(name='Hidráulica', description='Tubos, conexões e registros',
                                   cnae='4744-0/03'),
            'ferramentas': Category(name='Ferramentas', description='Ferramentas manuais e elétricas'),
        }
        db.session.add_all(categories.values())

        suppliers = [
            Supplier(name='Distribuidora Nordeste', contact_person='Carlos Lima', email='vendas@dnordeste.com.br',
                     phone='(81) 3333-4444', city='Recife', state='PE', cnpj='11222333000181'),
            Supplier(name='Elétrica Brasil', contact_person='Ana Souza', email='contato@eletricabrasil.com.br',
                     phone='(11) 3555-6666', city='São Paulo', state='SP', cnpj='11444777000161'),
        ]
        db.session.add_all(suppliers)

        customers = [
            Customer(name='João da Silva', document='52998224725', type=RETAIL, phone='(81) 99999-0001',
                     city='Recife', state='PE'),
            Customer(name='Maria Oliveira', document='11144477735', type=RETAIL, phone='(81) 99999-0002',
                     city='Olinda', state='PE'),
            Customer(name='Construtora Horizonte', type=WHOLESALE, email='compras@horizonte.com.br',
                     city='Recife', state='PE'),
        ]
        db.session.add_all(customers)
        db.session.flush()

        products = [
            ('PAR-001', 'Parafuso Sextavado 1/4" (cento)', '18.90', 'ferragens', suppliers[0], 120),
            ('PRE-002', 'Prego 17x21 (kg)', '14.50', 'ferragens', suppliers[0], 80),
            ('FIO-010', 'Fio Flexível 2,5mm (rolo 100m)', '189.90', 'eletrica', suppliers[1], 25),
            ('DIS-020', 'Disjuntor Bipolar 32A', '42.00', 'eletrica', suppliers[1], 8),
            ('TUB-030', 'Tubo PVC 25mm (6m)', '22.75', 'hidraulica', suppliers[0], 60),
            ('MAR-040', 'Martelo Unha 27mm', '35.90', 'ferramentas', None, 0),
        ]
        for code, name, price, category, supplier, stock in products:
            product = Product(code=code, name=name, price=Decimal(price),
                              category=categories[category], supplier=supplier)
            db.session.add(product)
            InventoryService.create_for_product(product, admin_user, quantity=stock, location='Depósito')

        db.session.commit()
        print("Dados iniciais adicionados")
        print("Login:")
        print("Email: admin@comercialpereira.com")
        print("Senha: admin123")


if __name__ == '__main__':
    create_database()
