"""Schema providers for the target DDL script."""

from abc import ABC, abstractmethod
from typing import Callable
import logging

logger = logging.getLogger(__name__)


EXTENSIONS_SQL = """\
-- Enable necessary extensions
CREATE EXTENSION IF NOT EXISTS "uuid-ossp";
"""

TABLES_SQL = """\
-- Create tables
CREATE TABLE public.profiles (
    id uuid PRIMARY KEY,
    updated_at timestamp with time zone,
    email text NOT NULL,
    name text,
    "avatarUrl" text,
    role text NOT NULL CHECK (role IN ('ADMIN', 'OWNER', 'TENANT', 'BUYER', 'SELLER'))
);

CREATE TABLE public.categories (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    name text NOT NULL,
    "iconUrl" text NOT NULL,
    translations jsonb
);

CREATE TABLE public.amenities (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    created_at timestamp with time zone DEFAULT now(),
    name text NOT NULL,
    translations jsonb
);

CREATE TABLE public.brokers (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    name text NOT NULL,
    title text NOT NULL,
    "avatarUrl" text NOT NULL,
    phone text NOT NULL,
    email text NOT NULL
);

CREATE TABLE public.properties (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    "createdAt" timestamp with time zone DEFAULT now(),
    title text NOT NULL,
    code text,
    address text NOT NULL,
    neighborhood text NOT NULL,
    city text NOT NULL,
    state text NOT NULL,
    "zipCode" text NOT NULL,
    description text NOT NULL,
    purpose text NOT NULL CHECK (purpose IN ('RENT', 'SALE', 'SEASONAL')),
    "rentPrice" numeric,
    "salePrice" numeric,
    "propertyType" text NOT NULL CHECK ("propertyType" IN ('Casa', 'Apartamento', 'Condomínio', 'Comercial', 'Terreno', 'Sobrado')),
    "categoryId" uuid REFERENCES categories(id),
    bedrooms integer,
    bathrooms integer,
    "areaM2" numeric,
    "repairQuality" text,
    status text NOT NULL DEFAULT 'AVAILABLE' CHECK (status IN ('AVAILABLE', 'RENTED', 'SOLD', 'ARCHIVED')),
    "yearBuilt" integer,
    images jsonb DEFAULT '[]',
    amenities jsonb DEFAULT '[]',
    "priceHistory" jsonb DEFAULT '[]',
    "availableDate" date,
    "listedByUserId" uuid,
    "isPopular" boolean DEFAULT false,
    "tourUrl" text,
    "viewCount" integer DEFAULT 0,
    display_order integer,
    translations jsonb
);

CREATE TABLE public.applications (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    "propertyId" uuid NOT NULL REFERENCES properties(id),
    "applicantId" uuid NOT NULL REFERENCES profiles(id),
    "applicationDate" timestamp with time zone DEFAULT now(),
    status text NOT NULL DEFAULT 'Pending' CHECK (status IN ('Pending', 'Accepted', 'Rejected', 'Draft')),
    "totalIncome" numeric,
    "incomeToRentRatio" numeric,
    occupants integer,
    "moveInDate" date,
    vehicles text,
    "backgroundChecks" jsonb,
    "creditReport" jsonb,
    reference jsonb
);

CREATE TABLE public.tenants (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    "userId" uuid NOT NULL REFERENCES profiles(id),
    "propertyId" uuid NOT NULL REFERENCES properties(id),
    "leaseEndDate" date NOT NULL,
    "rentAmount" numeric NOT NULL
);

CREATE TABLE public.conversations (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    created_at timestamp with time zone DEFAULT now(),
    customer_name text NOT NULL,
    customer_email text NOT NULL,
    property_id uuid REFERENCES properties(id),
    last_message_at timestamp with time zone DEFAULT now(),
    last_message_preview text,
    admin_has_unread boolean DEFAULT false
);

CREATE TABLE public.messages (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    created_at timestamp with time zone DEFAULT now(),
    conversation_id uuid NOT NULL REFERENCES conversations(id),
    sender text NOT NULL CHECK (sender IN ('ADMIN', 'CUSTOMER')),
    content text NOT NULL
);

CREATE TABLE public.resources (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    title text NOT NULL,
    "fileUrl" text NOT NULL
);

CREATE TABLE public.property_type_translations (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    name text NOT NULL,
    translations jsonb
);

CREATE TABLE public.ai_configs (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    created_at timestamp with time zone DEFAULT now(),
    provider text NOT NULL,
    api_key text,
    model text,
    max_tokens integer,
    is_active boolean DEFAULT false
);

CREATE TABLE public.storage_configs (
    id uuid PRIMARY KEY DEFAULT uuid_generate_v4(),
    created_at timestamp with time zone DEFAULT now(),
    storage_url text NOT NULL,
    storage_key text NOT NULL,
    bucket_name text NOT NULL,
    is_active boolean DEFAULT false
);
"""

FUNCTIONS_SQL = """\
-- Create functions
CREATE OR REPLACE FUNCTION increment_view_count(prop_id uuid)
RETURNS void AS $$
BEGIN
    UPDATE properties
    SET "viewCount" = COALESCE("viewCount", 0) + 1
    WHERE id = prop_id;
END;
$$ LANGUAGE plpgsql;

CREATE OR REPLACE FUNCTION set_active_ai_config(config_id uuid)
RETURNS void AS $$
BEGIN
    UPDATE ai_configs SET is_active = false;
    UPDATE ai_configs SET is_active = true WHERE id = config_id;
END;
$$ LANGUAGE plpgsql;
"""

# Tables with row level security enabled.
RLS_TABLES = [
    "profiles",
    "properties",
    "applications",
    "tenants",
    "conversations",
    "messages",
    "ai_configs",
    "storage_configs",
]

PUBLIC_READ_TABLES = [
    "categories",
    "amenities",
    "brokers",
    "properties",
    "resources",
    "property_type_translations",
]

ADMIN_TABLES = [
    "profiles",
    "applications",
    "tenants",
    "conversations",
    "messages",
    "ai_configs",
    "storage_configs",
]


def _policies_sql() -> str:
    lines = ["-- Enable Row Level Security (RLS)"]
    lines += [f"ALTER TABLE public.{t} ENABLE ROW LEVEL SECURITY;" for t in RLS_TABLES]
    lines.append("")
    lines.append("-- Basic RLS policies (adjust to your requirements)")
    lines += [
        f'CREATE POLICY "Public read access" ON public.{t} FOR SELECT USING (true);'
        for t in PUBLIC_READ_TABLES
    ]
    lines.append("")
    lines.append("-- Full access for authenticated users")
    lines += [
        f'CREATE POLICY "Admin full access" ON public.{t} FOR ALL USING (auth.role() = \'authenticated\');'
        for t in ADMIN_TABLES
    ]
    return "\n".join(lines) + "\n"


class SchemaProvider(ABC):
    """Supplies the DDL script applied to the target before data import."""

    @abstractmethod
    def get_schema(self) -> str:
        pass


class StaticSchemaProvider(SchemaProvider):
    """
    The application's known schema as a fixed template.

    The source gateway exposes no portable introspection API, so the script
    describes the known table set rather than the live database. Columns or
    tables added on the source after this template was written are not
    reflected.
    """

    def get_schema(self) -> str:
        return "\n".join([EXTENSIONS_SQL, TABLES_SQL, FUNCTIONS_SQL, _policies_sql()])


class CallableSchemaProvider(SchemaProvider):
    """Wraps a function returning DDL, e.g. a live introspection routine."""

    def __init__(self, func: Callable[[], str]):
        self._func = func

    def get_schema(self) -> str:
        return self._func()
