"""
Field names used in the record store.

Data format (confirmed against the live bases):
  - Product prices:  numbers per pax category, e.g. "INV26 ADU" = 250
  - Temporada:       single select OR multiple select (list joined with ", ")
  - Mídia do Passeio: attachment list [{url, filename, ...}]
  - Lido por:        multiple select / text list ["Maria Souza", ...]
                     OR collaborator list [{id, email, name}]
  - Comision_base:   fraction, e.g. 0.10
"""


class ProductFields:
    DESTINATION = "Destino"
    TOUR_NAME = "Atividade"
    CATEGORY = "Categoria do Serviço"
    SUB_CATEGORY = "Subcategoria"
    PRICE_ADULT = "INV26 ADU"
    PRICE_MINOR = "INV26 CHD"
    PRICE_INFANT = "INV26 INF"
    PICKUP = "Pickup"
    RETURN = "Retorno"
    SEASON = "Temporada"
    ELIGIBLE_DAYS = "Dias elegíveis"
    DESCRIPTION = "Descrição"
    INCLUSIONS = "Inclusões"
    EXCLUSIONS = "Exclusões"
    REQUIREMENTS = "Requisitos"
    EXTRA_FEES = "Taxas Extras"
    MEDIA = "Mídia do Passeio"


class AgencyFields:
    NAME = "Agency"
    NAME_LEGACY = "Name"
    EMAIL = "mail"
    COMMISSION = "Comision_base"
    IS_ADMIN = "Admin"
    IS_INTERNAL = "Interno"
    CAN_RESERVE = "Pode Reservar"
    SKILLS = "Skills"


class NoticeFields:
    TITLE = "Título"
    CATEGORY = "Categoria"
    DETAILS = "Detalhes"
    PUBLISHED_AT = "Data de Publicação"
    IS_NEW = "Novo"
    ATTACHMENTS = "Anexos"
    REQUIRES_CONFIRMATION = "Requer Confirmação"
    READ_BY = "Lido por"


class ReadLogFields:
    NOTICE_ID = "Notice ID"
    USER_EMAIL = "User Email"
    USER_NAME = "User Name"
    AGENCY_ID = "Agency ID"
    AGENCY_NAME = "Agency Name"
    TIMESTAMP = "Timestamp"


class ReservationFields:
    PRODUCT = "Produto"
    DESTINATION = "Destino"
    DATE = "Data"
    ADULTS = "Adultos"
    CHILDREN = "Crianças"
    INFANTS = "Bebês"
    PAX_NAMES = "Passageiros"
    TOTAL = "Valor Total"
    COMMISSION = "Comissão"
    AGENCY_ID = "Agency ID"
    CREATED_BY = "Criado por"
