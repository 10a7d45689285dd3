from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

CATEGORIES = ("country", "purpose", "airport", "air_transport_type", "airline", "currency")

COUNTRIES = {
    "UNITED STATES": "AMERIKA SERIKAT",
    "UNITED STATES OF AMERICA": "AMERIKA SERIKAT",
    "UNITED KINGDOM": "INGGRIS",
    "GERMANY": "JERMAN",
    "FRANCE": "PERANCIS",
    "NETHERLANDS": "BELANDA",
    "BELGIUM": "BELGIA",
    "SWITZERLAND": "SWISS",
    "SWEDEN": "SWEDIA",
    "NORWAY": "NORWEGIA",
    "DENMARK": "DENMARK",
    "FINLAND": "FINLANDIA",
    "SPAIN": "SPANYOL",
    "PORTUGAL": "PORTUGIS",
    "ITALY": "ITALIA",
    "GREECE": "YUNANI",
    "POLAND": "POLANDIA",
    "RUSSIA": "RUSIA",
    "RUSSIAN FEDERATION": "RUSIA",
    "TURKEY": "TURKI",
    "EGYPT": "MESIR",
    "SAUDI ARABIA": "ARAB SAUDI",
    "UNITED ARAB EMIRATES": "UNI EMIRAT ARAB",
    "JAPAN": "JEPANG",
    "SOUTH KOREA": "KOREA SELATAN",
    "KOREA, REPUBLIC OF": "KOREA SELATAN",
    "NORTH KOREA": "KOREA UTARA",
    "CHINA": "TIONGKOK",
    "TAIWAN": "TAIWAN",
    "HONG KONG": "HONGKONG",
    "INDIA": "INDIA",
    "SINGAPORE": "SINGAPURA",
    "MALAYSIA": "MALAYSIA",
    "THAILAND": "THAILAND",
    "VIETNAM": "VIETNAM",
    "PHILIPPINES": "FILIPINA",
    "CAMBODIA": "KAMBOJA",
    "AUSTRALIA": "AUSTRALIA",
    "NEW ZEALAND": "SELANDIA BARU",
    "CANADA": "KANADA",
    "MEXICO": "MEKSIKO",
    "BRAZIL": "BRASIL",
    "ARGENTINA": "ARGENTINA",
    "SOUTH AFRICA": "AFRIKA SELATAN",
}

PURPOSES = {
    "1-DAY TRANSIT": "TRANSIT 1 HARI",
    "BUSINESS": "BISNIS",
    "MEETING": "RAPAT",
    "CONFERENCE": "KONFERENSI",
    "CONVENTION": "KONVENSI",
    "EXHIBITION": "PAMERAN",
    "CREW": "AWAK ALAT ANGKUT",
    "EDUCATION": "PENDIDIKAN",
    "TRAINING": "PELATIHAN",
    "EMPLOYMENT": "BEKERJA",
    "HOLIDAY": "LIBURAN",
    "SIGHTSEEING": "WISATA",
    "LEISURE": "REKREASI",
    "MEDICAL CARE": "PERAWATAN MEDIS",
    "OFFICIAL": "KUNJUNGAN RESMI",
    "GOVERNMENT VISIT": "KUNJUNGAN PEMERINTAHAN",
    "RELIGION": "KEAGAMAAN",
    "SPORT EVENT": "KEGIATAN OLAHRAGA",
    "VISITING FRIENDS": "MENGUNJUNGI TEMAN",
    "RELATIVES": "MENGUNJUNGI KELUARGA",
    "OTHERS": "LAINNYA",
}

AIRPORTS = {
    "CGK": "CGK - SOEKARNO-HATTA AIRPORT",
    "DPS": "DPS - I GUSTI NGURAH RAI AIRPORT",
    "SUB": "SUB - JUANDA AIRPORT",
    "KNO": "KNO - KUALANAMU AIRPORT",
    "SRG": "SRG - AHMAD YANI AIRPORT",
    "HLP": "HLP - HALIM PERDANAKUSUMA AIRPORT",
    "BTH": "BTH - HANG NADIM AIRPORT",
    "TJQ": "TJQ - H.A.S. HANANDJOEDDIN AIRPORT",
    "KJT": "KJT - KERTAJATI AIRPORT",
    "KMD": "KMD - KOMODO AIRPORT",
    "LBJ": "KMD - KOMODO AIRPORT",
    "YIA": "YIA - KULON PROGO AIRPORT",
    "JOG": "YIA - KULON PROGO AIRPORT",
    "PDG": "PDG - MINANGKABAU AIRPORT",
    "MDC": "MDC - SAM RATULANGI AIRPORT",
    "DJJ": "DJJ - SENTANI AIRPORT",
    "BPN": "BPN - SULTAN AJI MUHAMMAD SULAIMAN AIRPORT",
    "UPG": "UPG - SULTAN HASANUDDIN AIRPORT",
    "BTJ": "BTJ - SULTAN ISKANDAR MUDA AIRPORT",
    "PLM": "PLM - SULTAN MAHMUD BADARUDDIN II AIRPORT",
    "PKU": "PKU - SULTAN SYARIF KASIM II AIRPORT",
    "PNK": "PNK - SUPADIO AIRPORT",
    "BDJ": "BDJ - SYAMSUDIN NOOR AIRPORT",
    "LOP": "LOP - ZAINUDDIN ABDUL MAJID AIRPORT",
}

AIR_TRANSPORT_TYPES = {
    "COMMERCIAL FLIGHT": "PENERBANGAN KOMERSIAL",
    "GOVERNMENT FLIGHT": "PENERBANGAN PEMERINTAH",
    "CHARTER FLIGHT": "PENERBANGAN CARTER",
}

AIRLINE_CODES = {
    "AIRASIA BERHAD": "AK",
    "AIRASIA X": "XJ",
    "AIR CHINA": "CA",
    "AIR INDIA": "AI",
    "AIR NEW ZEALAND": "NZ",
    "ALL NIPPON AIRWAYS": "NH",
    "BATIK AIR": "ID",
    "BATIK AIR MALAYSIA": "OD",
    "CATHAY PACIFIC AIRWAYS": "CX",
    "CEBU PACIFIC AIR": "5J",
    "CHINA AIRLINES": "CI",
    "CHINA EASTERN AIRLINES": "MU",
    "CHINA SOUTHERN AIRLINES": "CZ",
    "CITILINK": "QG",
    "EMIRATES": "EK",
    "ETIHAD AIRWAYS": "EY",
    "EVA AIR": "BR",
    "GARUDA INDONESIA": "GA",
    "INDIGO": "6E",
    "JAPAN AIRLINES": "JL",
    "JETSTAR AIRWAYS": "JQ",
    "JETSTAR ASIA AIRWAYS": "3K",
    "KLM": "KL",
    "KOREAN AIR": "KE",
    "LION AIR": "JT",
    "MALAYSIA AIRLINES": "MH",
    "NAM AIR": "IN",
    "PELITA AIR": "IP",
    "PHILIPPINE AIRLINES": "PR",
    "QANTAS AIRWAYS": "QF",
    "QATAR AIRWAYS": "QR",
    "SAUDIA": "SV",
    "SCOOT": "TR",
    "SINGAPORE AIRLINES": "SQ",
    "SRIWIJAYA AIR": "SJ",
    "SUPER AIR JET": "IU",
    "THAI AIRASIA": "FD",
    "THAI AIRWAYS": "TG",
    "THAI LION AIR": "SL",
    "TRANSNUSA": "8B",
    "TURKISH AIRLINES": "TK",
    "VIETNAM AIRLINES": "VN",
    "VIRGIN AUSTRALIA": "VA",
    "WINGS AIR": "IW",
    "XIAMEN AIRLINES": "MF",
}

CURRENCIES = {
    "IDR": "IDR - Rupiah Indonesia (IDR)",
    "USD": "USD - Dolar Amerika Serikat (USD)",
    "EUR": "EUR - Euro (EUR)",
    "GBP": "GBP - Pound Sterling (GBP)",
    "JPY": "JPY - Yen Jepang (JPY)",
    "CNY": "CNY - Yuan China (CNY)",
    "SGD": "SGD - Dolar Singapura (SGD)",
    "MYR": "MYR - Ringgit Malaysia (MYR)",
    "THB": "THB - Baht Thailand (THB)",
    "AUD": "AUD - Dolar Australia (AUD)",
    "KRW": "KRW - Won Korea Selatan (KRW)",
}


def _freeze(table: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType({key.strip().upper(): value for key, value in table.items()})


DEFAULT_TABLES: Mapping[str, Mapping[str, str]] = MappingProxyType(
    {
        "country": _freeze(COUNTRIES),
        "purpose": _freeze(PURPOSES),
        "airport": _freeze(AIRPORTS),
        "air_transport_type": _freeze(AIR_TRANSPORT_TYPES),
        "airline": _freeze({name: f"{code} - {name}" for name, code in AIRLINE_CODES.items()}),
        "currency": _freeze(CURRENCIES),
    }
)


def _normalize(value: str) -> str:
    return " ".join(value.split()).upper()


class Translator:
    """Maps applicant free text onto the portal's option labels.

    Lookups never raise: a miss hands back the value unchanged and the caller
    decides whether the option list accepts it.
    """

    def __init__(self, tables: Mapping[str, Mapping[str, str]] | None = None) -> None:
        source = DEFAULT_TABLES if tables is None else tables
        self._tables = MappingProxyType({category: _freeze(table) for category, table in source.items()})

    @property
    def tables(self) -> Mapping[str, Mapping[str, str]]:
        return self._tables

    def translate(self, value: str, category: str) -> str:
        table = self._tables.get(category)
        if table is None or not value:
            return value

        key = _normalize(value)
        if key in table:
            return table[key]

        if category == "purpose" and "/" in key:
            for keyword in key.split("/"):
                keyword = keyword.strip()
                if keyword in table:
                    return table[keyword]

        if category == "airline":
            name = _normalize(airline_name(value))
            if name in table:
                return table[name]

        return value

    def candidates(self, value: str, category: str | None) -> list[str]:
        """Values to try in order: as supplied, then any translation of it."""
        if not value:
            return []

        ordered = [value.strip()]
        if category == "airline":
            ordered.append(airline_name(value))
        if category is not None:
            ordered.append(self.translate(value, category))

        seen: set[str] = set()
        result = []
        for item in ordered:
            key = _normalize(item)
            if item and key not in seen:
                seen.add(key)
                result.append(item)
        return result


def airline_name(value: str) -> str:
    """'SQ - SINGAPORE AIRLINES' -> 'SINGAPORE AIRLINES'; other values pass through."""
    _, sep, tail = value.partition(" - ")
    if not sep:
        return value.strip()
    return tail.strip()
