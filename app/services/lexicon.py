"""
Common-word dictionaries for the supported languages.

Built once at import time and exposed as a read-only mapping of frozensets,
so concurrent requests can share it without locking. Words are stored in the
same normalized form the tokenizer produces (lowercase, no diacritics).
"""

import re
import unicodedata
from types import MappingProxyType
from typing import Iterable, List, Mapping, FrozenSet

SUPPORTED_LANGUAGES = ("eng", "fra", "nld", "deu", "spa", "ita", "por", "pol")

_TOKEN_RE = re.compile(r"[^\W\d_]{2,}")


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def tokenize(text: str) -> List[str]:
    """Lowercase, strip diacritics and keep alphabetic runs of length >= 2."""
    return _TOKEN_RE.findall(strip_diacritics(text.lower()))


_COMMON_WORDS = {
    "eng": """
        the be to of and in that have it for not on with he as you do at this
        but his by from they we say her she or an will my one all would there
        their what so up out if about who get which go me when make can like
        time no just him know take people into year your good some could them
        see other than then now look only come its over think also back after
        use two how our work first well way even new want because any these
        give day most us is was are been has had were said did having test
        message structure validation hello world please thank thanks click
        here link account your our verify update payment
    """,
    "fra": """
        le la les de des du un une et est en que qui dans ce cette ces pour
        pas par sur au aux avec il elle ils elles nous vous je tu on son sa
        ses leur leurs mais ou donc car ne plus tout tous bien fait etre avoir
        comme mon ma mes ton ta tes notre votre vos se lui meme aussi tres
        bonjour merci message test validation ceci voici cela ici sont suis
        avez etes sommes peut faire encore deja votre compte cliquez lien
    """,
    "nld": """
        de het een en van in is dat op te zijn niet met voor die er aan als
        ook maar om bij dit dan nog wel of naar uit door worden wordt kan
        heeft hebben was waren geen zo meer al ik je jij hij zij wij we jullie
        ze mijn uw ons onze deze wat wie hoe waar hier daar hallo dag bedankt
        alstublieft bericht test testbericht nederlands klik uw rekening
    """,
    "deu": """
        der die das und ist ein eine einen einem einer nicht mit von zu den
        im in auf fur sich des dem auch es an als wie ich du er sie wir ihr
        mein dein sein unser euer bei aus nach oder aber wenn noch nur so
        schon hier dort war sind hat haben wird werden kann konnen mussen
        hallo danke bitte nachricht test prufung deutsch klicken konto
        ihre ihren diese dieser dieses
    """,
    "spa": """
        el la los las de del un una unos unas es son esta este estos estas
        en que y por para con no se lo le les su sus al como mas pero sus
        yo tu usted nosotros ellos ella muy ya hay ser estar fue sido mi
        tambien donde cuando quien hola gracias mensaje prueba test espanol
        favor aqui cuenta haga clic enlace
    """,
    "ita": """
        il lo la le gli un una uno di del della dei delle che per con non
        sono come ma anche se piu questo questa questi queste quello quella
        io tu lui lei noi voi loro mio tuo suo nostro vostro al alla ai agli
        da dal dalla nel nella sul sulla ciao grazie messaggio prova test
        italiano ecco qui perche quando dove fare essere avere clicca conto
    """,
    "por": """
        o os as um uma uns umas de do da dos das em no na nos nas que por
        para com nao se mais mas como ele ela eles elas eu voce nos seu sua
        seus suas meu minha este esta estes estas isso isto aquele foi ser
        estar tem sao muito tambem ola obrigado obrigada mensagem teste test
        portugues aqui clique conta
    """,
    "pol": """
        to jest sie nie na w z do ze co jak tak ale czy od po za o dla przez
        jestem jestes sa byl byla bedzie mam masz ma ten ta te tym tego tej
        ja ty on ona my wy oni moj twoj nasz wasz juz tylko bardzo tutaj
        witaj czesc dziekuje prosze wiadomosc testowa test jezyku polskim
        kliknij konto
    """,
}


def _build(entries: Mapping[str, str]) -> Mapping[str, FrozenSet[str]]:
    table = {}
    for language, words in entries.items():
        table[language] = frozenset(tokenize(words))
    return MappingProxyType(table)


LEXICON: Mapping[str, FrozenSet[str]] = _build(_COMMON_WORDS)


def match_ratio(tokens: Iterable[str], words: FrozenSet[str]) -> float:
    """Share of tokens found in the dictionary; 0.0 for no tokens."""
    tokens = list(tokens)
    if not tokens:
        return 0.0
    matched = sum(1 for token in tokens if token in words)
    return matched / len(tokens)
