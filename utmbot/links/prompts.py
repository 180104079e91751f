"""User-facing texts of the link-building conversation."""
from __future__ import annotations

import html

TURKISH_CHAR_WARNING = "⚠️ *Uyarı:* Türkçe karakter kullanmayın (ş, ı, ğ, ü, ö, ç)"

ASK_SOURCE_URL = (
    "📝 *Adım 1/6: Kaynak URL*\n\n"
    "Lütfen UTM parametreleri eklemek istediğiniz URL'yi girin.\n\n"
    "Örnek: `https://hayratyardim.org/bagis/genel-su-kuyusu/`"
)
INVALID_URL = "⚠️ Geçersiz URL formatı. Lütfen geçerli bir URL girin (https:// ile başlamalı)."

ASK_SOURCE = "📝 *Adım 2/6: Trafik Kaynağı (utm_source)*\n\nAşağıdaki seçeneklerden birini seçin:"
ASK_MEDIUM = "📝 *Adım 3/6: Pazarlama Ortamı (utm_medium)*\n\nAşağıdaki seçeneklerden birini seçin:"
ASK_CAMPAIGN = (
    "📝 *Adım 4/6: Kampanya Adı (utm_campaign)*\n\n"
    "Lütfen kampanya adını girin.\n\n"
    f"{TURKISH_CHAR_WARNING}\n\n"
    "Örnek: `su_kuyusu_genel`"
)
ASK_CONTENT = (
    "📝 *Adım 5/6: Kreatif Adı (utm_content)*\n\n"
    "Lütfen kreatif/içerik adını girin.\n\n"
    f"{TURKISH_CHAR_WARNING}\n\n"
    "Örnek: `test_genel_su_kuyusu`"
)
ASK_TERM = (
    "📝 *Adım 6/6: Reklam Seti (utm_term) - Opsiyonel*\n\n"
    "Reklam seti adını girin veya boş bırakmak için 'Atla' butonuna tıklayın.\n\n"
    f"{TURKISH_CHAR_WARNING}"
)
SKIP_TERM_LABEL = "⏭️ Atla (Boş Bırak)"
SKIP_TERM_PAYLOAD = "skip_term"

CHOOSE_FROM_OPTIONS = "⚠️ Lütfen aşağıdaki seçeneklerden birini seçin."
TYPE_ANSWER = "⚠️ Lütfen cevabınızı mesaj olarak yazın."
CANCELLED = "❌ İşlem iptal edildi. Yeni bir link oluşturmak için /build komutunu kullanabilirsiniz."
SESSION_NOT_FOUND = "Oturum bulunamadı. Lütfen /build ile yeniden başlayın."
ASSEMBLY_FAILED = "❌ URL işlenirken bir hata oluştu. Lütfen /build ile tekrar deneyin."
UNKNOWN_COMMAND = "Bilinmeyen komut. /start komutu ile kullanılabilir komutları görebilirsiniz."

WELCOME = """🔗 <b>Hayrat Yardım UTM Builder Bot'a Hoş Geldiniz!</b>

Bu bot, pazarlama kampanyalarınız için UTM parametreli linkler oluşturmanıza ve reklam performansını analiz etmenize yardımcı olur.

<b>📊 Analiz Komutları:</b>
/toplam - Tüm bağışların özeti
/toplam DD.MM.YYYY - DD.MM.YYYY - Tarih aralığı
/kaynaklar - Kaynak bazlı analiz (meta, google vb.)
/kampanyalar - Kampanya performansı
/ortamlar - Reklam ortamı analizi
/gunluk - Bugünün özeti
/son [N] - Son N bağış (varsayılan 5)
/ortalama - Ortalama bağış analizi
/export - Excel olarak dışa aktar
/export DD.MM.YYYY - DD.MM.YYYY - Tarih aralığı
/analiz [URL] - UTM linkinden bağış analizi
/kalem [ad] - Bağış kalemi analizi
/google, /meta - Kaynak detay raporu

<b>🔗 UTM Komutları:</b>
/build - Yeni UTM link oluştur
/cancel - İşlemi iptal et
/myid - Chat ID'nizi öğrenin

<b>UTM Parametreleri:</b>
• utm_source - Trafik kaynağı
• utm_medium - Pazarlama ortamı
• utm_campaign - Kampanya adı
• utm_content - Kreatif/içerik adı
• utm_term - Reklam seti (opsiyonel)"""


def my_id(chat_id: int, user_id: int) -> str:
    return (
        "🆔 *Chat ve Kullanıcı Bilgileriniz*\n\n"
        f"*Chat ID:* `{chat_id}`\n"
        f"*User ID:* `{user_id}`\n\n"
        "Bu Chat ID'yi NOTIFICATION_CHAT_IDS içinde kullanabilirsiniz."
    )


def final_link(session, link: str, prefix: str) -> str:
    """HTML summary of the finished link (HTML avoids Markdown's '_' trouble)."""
    e = html.escape
    lines = [
        "✅ <b>UTM Link Başarıyla Oluşturuldu!</b>",
        "",
        "📊 <b>Parametreler:</b>",
        f"• Kaynak URL: {e(session.source_url)}",
        f"• {prefix}source: {e(session.utm_source)}",
        f"• {prefix}medium: {e(session.utm_medium)}",
        f"• {prefix}campaign: {e(session.campaign)}",
        f"• {prefix}content: {e(session.content)}",
    ]
    if session.term:
        lines.append(f"• {prefix}term: {e(session.term)}")
    lines += [
        "",
        "🔗 <b>Son URL:</b>",
        f"<code>{e(link)}</code>",
        "",
        "Yeni bir link oluşturmak için /build komutunu kullanabilirsiniz.",
    ]
    return "\n".join(lines)


def final_link_plain(link: str) -> str:
    return f"✅ UTM Link Başarıyla Oluşturuldu!\n\n🔗 Son URL:\n{link}"
