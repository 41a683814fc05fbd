"""
Starter data for a fresh library.

``seed_library`` loads the five bilingual categories, the starter catalog and
the three staff/demo accounts (all with the password ``password``) into an
empty store. ``generate_demo_patrons`` adds realistic regular accounts for
demos, using Faker with a fixed seed so runs are reproducible.
"""

import logging
import re
from datetime import datetime, timedelta

from faker import Faker
from werkzeug.security import generate_password_hash

from ..models.book import BookCreate, CategoryCreate
from ..models.user import UserCreate
from ..permissions import Role
from .interfaces import UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "password"  # noqa: S105 - demo accounts only

CATEGORIES = [
    CategoryCreate(name="Quran Studies", name_ar="دراسات القرآن", icon="menu_book"),
    CategoryCreate(name="Hadith", name_ar="الحديث", icon="history_edu"),
    CategoryCreate(name="Fiqh", name_ar="الفقه", icon="account_balance"),
    CategoryCreate(name="Spirituality", name_ar="الروحانية", icon="psychology"),
    CategoryCreate(name="Biography", name_ar="السيرة", icon="auto_stories"),
]

BOOKS = [
    BookCreate(
        title="The Noble Quran",
        title_ar="القرآن الكريم",
        author="Translation & Commentary",
        author_ar="ترجمة وتفسير",
        category="Quran Studies",
        category_ar="دراسات القرآن",
        description="The Noble Quran with English translation and commentary",
        description_ar="القرآن الكريم مع ترجمة وتفسير باللغة الإنجليزية",
        isbn="QRN001",
        publication_year=2010,
        cover_image="https://images.unsplash.com/photo-1594732832278-abd644401426",
        inventory_id="QRN001",
    ),
    BookCreate(
        title="Sahih Al-Bukhari",
        title_ar="صحيح البخاري",
        author="Imam Bukhari",
        author_ar="الإمام البخاري",
        category="Hadith",
        category_ar="الحديث",
        description="The most authentic collection of Hadith compiled by Imam Bukhari",
        description_ar="أصح مجموعة من الأحاديث جمعها الإمام البخاري",
        isbn="HDT001",
        publication_year=1986,
        cover_image="https://images.unsplash.com/photo-1590656872261-81a78d508292",
        inventory_id="HDT001",
    ),
    BookCreate(
        title="Riyad as-Salihin",
        title_ar="رياض الصالحين",
        author="Imam An-Nawawi",
        author_ar="الإمام النووي",
        category="Hadith",
        category_ar="الحديث",
        description="A compilation of verses from the Quran and hadith by Imam Nawawi",
        description_ar="مجموعة من آيات القرآن والأحاديث للإمام النووي",
        isbn="HDT012",
        publication_year=1990,
        cover_image="https://images.unsplash.com/photo-1565371577816-596d0f21dd6f",
        inventory_id="HDT012",
    ),
    BookCreate(
        title="The Sealed Nectar",
        title_ar="الرحيق المختوم",
        author="Safiur-Rahman Al-Mubarakpuri",
        author_ar="صفي الرحمن المباركفوري",
        category="Biography",
        category_ar="السيرة",
        description="Biography of Prophet Muhammad (peace be upon him)",
        description_ar="سيرة النبي محمد (صلى الله عليه وسلم)",
        isbn="BIO005",
        publication_year=1996,
        cover_image="https://images.unsplash.com/photo-1566378800032-becdeabbc2cb",
        inventory_id="BIO005",
    ),
    BookCreate(
        title="Islamic Jurisprudence",
        title_ar="الفقه الإسلامي",
        author="Muhammad ibn Idris al-Shafi'i",
        author_ar="محمد بن إدريس الشافعي",
        category="Fiqh",
        category_ar="الفقه",
        description="Detailed explanation of Islamic jurisprudence principles",
        description_ar="شرح مفصل لمبادئ الفقه الإسلامي",
        isbn="FQH008",
        publication_year=1978,
        cover_image="https://images.unsplash.com/photo-1601723897335-ebe64614a114",
        inventory_id="FQH008",
    ),
]

ACCOUNTS = [
    ("admin", "System Administrator", "admin@alhikmahlibrary.org", Role.ADMIN),
    ("librarian", "Head Librarian", "librarian@alhikmahlibrary.org", Role.LIBRARIAN),
    ("user", "Regular User", "user@example.com", Role.USER),
]

# Starts out on loan so the catalog shows an unavailable title.
ON_LOAN_INVENTORY_ID = "HDT012"


def seed_library(uow: UnitOfWork, now: datetime | None = None, loan_days: int = 14) -> bool:
    """
    Load the starter data unless the store already has users or books.

    The on-loan title goes through claim + borrowing like any real loan, so
    the availability invariant holds from the first request.

    Returns:
        True if data was loaded, False if the store was not empty
    """
    if uow.users.list_all() or uow.books.list_all():
        logger.info("Store already has data, skipping seed")
        return False

    now = now or datetime.now()
    logger.info("Seeding initial library data...")

    for category in CATEGORIES:
        uow.categories.create(category)

    books = {book.inventory_id: uow.books.create(book) for book in BOOKS}

    password_hash = generate_password_hash(DEFAULT_PASSWORD)
    users = {
        username: uow.users.create(
            UserCreate(
                username=username,
                password_hash=password_hash,
                full_name=full_name,
                email=email,
                role=role,
            )
        )
        for username, full_name, email, role in ACCOUNTS
    }

    on_loan = books[ON_LOAN_INVENTORY_ID]
    uow.books.claim(on_loan.id)
    uow.borrowings.create(
        user_id=users["user"].id,
        book_id=on_loan.id,
        borrow_date=now,
        due_date=now + timedelta(days=loan_days),
    )

    logger.info(
        "Seeded %d categories, %d books and %d users", len(CATEGORIES), len(books), len(users)
    )
    return True


def generate_demo_patrons(uow: UnitOfWork, count: int = 20, seed: int = 42) -> int:
    """
    Add ``count`` regular accounts with realistic names (password ``password``).

    Usernames that already exist are skipped.

    Returns:
        Number of accounts created
    """
    fake = Faker()
    Faker.seed(seed)
    password_hash = generate_password_hash(DEFAULT_PASSWORD)

    created = 0
    for _ in range(count):
        # Draw every value up front so skipped names keep the stream aligned.
        first, last, domain = fake.first_name(), fake.last_name(), fake.free_email_domain()
        username = re.sub(r"[^a-z0-9.]", "", f"{first}.{last}".lower())
        if uow.users.get_by_username(username) is not None:
            continue
        uow.users.create(
            UserCreate(
                username=username,
                password_hash=password_hash,
                full_name=f"{first} {last}",
                email=f"{username}@{domain}",
                role=Role.USER,
            )
        )
        created += 1

    logger.info("Generated %d demo patrons", created)
    return created
