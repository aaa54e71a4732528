from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError

from fiscal import factory
from fiscal.exceptions import AuthorizationRejected, AuthorizationTimeout, FiscalError


class Command(BaseCommand):
    help = (
        "Reenvia à autoridade fiscal os documentos que ficaram pendentes "
        "(timeout/indisponibilidade), mantendo número e chave de acesso."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--minutos",
            type=int,
            default=5,
            help="Só reprocessa documentos emitidos há pelo menos N minutos (padrão: 5).",
        )
        parser.add_argument(
            "--limite",
            type=int,
            default=100,
            help="Quantidade máxima de documentos por execução (padrão: 100).",
        )

    def handle(self, *args, **options):
        minutos = options["minutos"]
        limite = options["limite"]
        if minutos < 0 or limite < 1:
            raise CommandError("--minutos deve ser >= 0 e --limite >= 1.")

        emissor = factory.get_emissor_fiscal()
        antes_de = emissor.relogio.agora() - timedelta(minutes=minutos)
        pendentes = emissor.listar_pendentes(antes_de)[:limite]

        self.stdout.write(
            self.style.NOTICE(f"[reprocessar_pendentes] {len(pendentes)} documento(s) pendente(s).")
        )

        autorizados = rejeitados = ainda_pendentes = 0
        for documento in pendentes:
            chave = documento.chave_acesso
            try:
                emissor.reprocessar_pendente(chave)
                autorizados += 1
                self.stdout.write(self.style.SUCCESS(f"  {chave}: autorizado"))
            except AuthorizationRejected as exc:
                rejeitados += 1
                self.stdout.write(self.style.WARNING(f"  {chave}: rejeitado ({exc.message})"))
            except AuthorizationTimeout:
                ainda_pendentes += 1
                self.stdout.write(self.style.WARNING(f"  {chave}: continua pendente"))
            except FiscalError as exc:
                raise CommandError(f"{chave}: {exc.code} {exc.message}") from exc

        self.stdout.write(
            self.style.SUCCESS(
                f"[reprocessar_pendentes] autorizados={autorizados} "
                f"rejeitados={rejeitados} pendentes={ainda_pendentes}"
            )
        )
